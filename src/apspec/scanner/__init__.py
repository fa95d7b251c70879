"""Source scanning: syntax forest, symbol oracle, endpoint scanner and metadata extraction."""

from __future__ import annotations

from apspec.scanner.forest import SourceFile, SourceForest
from apspec.scanner.metadata import EndpointMetadata, MetadataExtractor
from apspec.scanner.oracle import MethodSymbol, SourceOracle, SymbolOracle
from apspec.scanner.scanner import EndpointScanner
from apspec.scanner.types import DeclaredResponse, EndpointRecord, HttpVerb

__all__ = [
    "SourceFile",
    "SourceForest",
    "SymbolOracle",
    "SourceOracle",
    "MethodSymbol",
    "EndpointScanner",
    "MetadataExtractor",
    "EndpointMetadata",
    "EndpointRecord",
    "DeclaredResponse",
    "HttpVerb",
]
