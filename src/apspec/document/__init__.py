"""Runtime document composition: loading, merging, linting and caching fragments."""

from __future__ import annotations

from apspec.document.document import ComposedDocument, LoadStats
from apspec.document.linter import PolicyLinter
from apspec.document.loader import (
    DocumentLoader,
    FileDocumentLoader,
    ResourceDocumentLoader,
    ResourceReader,
    load_generated_fragment,
    parse_fragment,
)
from apspec.document.merger import DocumentMerger
from apspec.document.options import LintOptions
from apspec.document.part import DocumentFragment
from apspec.document.provider import DocumentProvider

__all__ = [
    "DocumentFragment",
    "ComposedDocument",
    "LoadStats",
    "DocumentLoader",
    "ResourceReader",
    "ResourceDocumentLoader",
    "FileDocumentLoader",
    "parse_fragment",
    "load_generated_fragment",
    "DocumentMerger",
    "LintOptions",
    "PolicyLinter",
    "DocumentProvider",
]
