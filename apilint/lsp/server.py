"""
LSP server implementation for apilint.

Provides real-time diagnostics for OpenAPI / AsyncAPI documents. Every
open, change and save re-lints the full text against the selected ruleset.
"""

from __future__ import annotations

import logging
from typing import Any

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer

from .. import __version__
from ..config import Settings
from ..errors import ApilintError, UnknownRuleset
from ..linter import Linter
from ..storage import FileKeyValueStore, Storage
from .diagnostics import to_lsp_diagnostics

logger = logging.getLogger(__name__)

DEFAULT_RULESET = "oas"


class ApilintLanguageServer(LanguageServer):
    """Language server for API description documents."""

    def __init__(self, settings: Settings | None = None, ruleset_name: str = DEFAULT_RULESET):
        super().__init__(name="apilint-lsp", version=__version__)
        self.settings = settings
        self.ruleset_name = ruleset_name
        self.linter = Linter(settings=settings)

    def apply_initialization_options(self, options: Any) -> None:
        if isinstance(options, dict) and isinstance(options.get("ruleset"), str):
            self.ruleset_name = options["ruleset"]

    async def load_rules(self) -> None:
        """Register every rule reference from the local index."""
        if self.settings is None:
            return
        storage = Storage.load_from_local_storage(
            self.settings.index_key, FileKeyValueStore.from_settings(self.settings)
        )
        try:
            await self.linter.setup(storage)
        except ApilintError as e:
            logger.warning(f"Failed to load configured rulesets: {e}")

    def lint_text(self, text: str) -> list[lsp.Diagnostic] | None:
        """Diagnostics for `text`, or None when the ruleset is not registered."""
        try:
            annotations = self.linter.lint_raw(text, self.ruleset_name)
        except UnknownRuleset as e:
            logger.warning(str(e))
            return None
        return to_lsp_diagnostics(annotations)


def create_server(settings: Settings | None = None, ruleset_name: str = DEFAULT_RULESET) -> ApilintLanguageServer:
    """Create and configure the LSP server."""
    server = ApilintLanguageServer(settings, ruleset_name)

    @server.feature(lsp.INITIALIZE)
    def initialize(params: lsp.InitializeParams) -> None:
        server.apply_initialization_options(params.initialization_options)

    @server.feature(lsp.INITIALIZED)
    async def initialized(params: lsp.InitializedParams) -> None:
        await server.load_rules()

    @server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
    def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
        _validate_document(server, params.text_document.uri, params.text_document.text)

    @server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
    def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
        document = server.workspace.get_text_document(params.text_document.uri)
        _validate_document(server, document.uri, document.source)

    @server.feature(lsp.TEXT_DOCUMENT_DID_SAVE)
    def did_save(params: lsp.DidSaveTextDocumentParams) -> None:
        document = server.workspace.get_text_document(params.text_document.uri)
        _validate_document(server, document.uri, document.source)

    @server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
    def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
        _publish(server, params.text_document.uri, [])

    return server


def _publish(server: ApilintLanguageServer, uri: str, diagnostics: list[lsp.Diagnostic]) -> None:
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics))


def _validate_document(server: ApilintLanguageServer, uri: str, content: str) -> None:
    """Run lint on document and publish diagnostics."""
    diagnostics = server.lint_text(content)
    if diagnostics is None:
        return
    _publish(server, uri, diagnostics)


def start_server(
    settings: Settings | None = None,
    ruleset_name: str = DEFAULT_RULESET,
    transport: str = "stdio",
) -> None:
    """Start the LSP server.

    Args:
        settings: Where to read the rule index from
        ruleset_name: Ruleset used until the client overrides it
        transport: Transport method ("stdio" or "tcp")
    """
    server = create_server(settings, ruleset_name)

    if transport == "stdio":
        server.start_io()
    else:
        # TCP transport for debugging
        server.start_tcp("localhost", 2087)
