"""apspec - OpenAPI generation and composition from route-registration source."""

from __future__ import annotations

# Config
from apspec.config import Config

# Errors
from apspec.errors import (
    ApSpecError,
    ComponentConflictError,
    ConfigError,
    ConfigNotFoundError,
    DocumentNotLoadedError,
    DuplicateEndpointError,
    DuplicatePathError,
    ErrorCodes,
    FragmentParseError,
    OpenApiValidationError,
    ResourceNotFoundError,
)

# Build-time pipeline
from apspec.scanner import EndpointRecord, EndpointScanner, MetadataExtractor, SourceForest, SourceOracle, SymbolOracle
from apspec.schema import TypeDescriptorResolver
from apspec.schema.assembler import SchemaAssembler
from apspec.emitter import DocumentEmitter
from apspec.generator import GeneratedSpec, GeneratorOptions, generate_spec, render_module

# Runtime composition
from apspec.document import (
    ComposedDocument,
    DocumentFragment,
    DocumentLoader,
    DocumentMerger,
    DocumentProvider,
    FileDocumentLoader,
    LintOptions,
    PolicyLinter,
    ResourceDocumentLoader,
    ResourceReader,
    load_generated_fragment,
)

__version__ = "0.1.0"

__all__ = [
    # Config
    "Config",
    # Errors
    "ApSpecError",
    "ConfigError",
    "ConfigNotFoundError",
    "ResourceNotFoundError",
    "FragmentParseError",
    "DuplicatePathError",
    "DuplicateEndpointError",
    "ComponentConflictError",
    "DocumentNotLoadedError",
    "OpenApiValidationError",
    "ErrorCodes",
    # Build-time pipeline
    "SourceForest",
    "SymbolOracle",
    "SourceOracle",
    "EndpointScanner",
    "MetadataExtractor",
    "EndpointRecord",
    "TypeDescriptorResolver",
    "SchemaAssembler",
    "DocumentEmitter",
    "GeneratorOptions",
    "GeneratedSpec",
    "generate_spec",
    "render_module",
    # Runtime composition
    "DocumentFragment",
    "ComposedDocument",
    "DocumentLoader",
    "ResourceReader",
    "ResourceDocumentLoader",
    "FileDocumentLoader",
    "load_generated_fragment",
    "DocumentMerger",
    "LintOptions",
    "PolicyLinter",
    "DocumentProvider",
]
