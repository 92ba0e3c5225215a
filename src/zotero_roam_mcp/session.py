"""Exchange context: the connection, fake document, and dispatcher together.

Built once at startup and reused for every pick, so the fake document
data written by the reference manager survives between exchanges.
"""

from __future__ import annotations

import logging

from .config import Settings
from .prompt import PromptAdapter
from .protocol.commands import Command, build_initiate_call
from .protocol.dispatcher import Dispatcher, FakeDocument
from .protocol.framing import Frame
from .roam.graph import KnowledgeGraph, OrgRoamGraph
from .roam.resolver import CitationResolver, Resolution
from .transport.tcp_connection import TCPConnection

logger = logging.getLogger(__name__)


class Session:
    def __init__(
        self,
        settings: Settings,
        graph: KnowledgeGraph | None = None,
        prompt: PromptAdapter | None = None,
        connection: TCPConnection | None = None,
    ) -> None:
        self.settings = settings
        self.graph = graph or OrgRoamGraph(
            db_path=settings.roam_db,
            directory=settings.roam_directory,
            filename_template=settings.filename_template,
            timestamp_format=settings.timestamp_format,
            editor_command=settings.editor_command,
        )
        self.document = FakeDocument()
        self.resolver = CitationResolver(self.graph, settings.uri_format, settings.username)
        self.dispatcher = Dispatcher(self.document, prompt or PromptAdapter(), self.resolver)
        self.connection = connection or TCPConnection(settings.host, settings.port)
        self.connection.on_frame = self._on_frame
        self._complete = False

    def _on_frame(self, frame: Frame) -> None:
        call, reply = self.dispatcher.handle_frame(frame)
        self.connection.send(reply)
        if call.command == Command.COMPLETE:
            self._complete = True

    def pick_reference(self) -> Resolution | None:
        """Ask the reference manager for a citation and serve it until done.

        Returns:
            The resolution of the picked item, or ``None`` if the user
            picked nothing.

        Any failure while serving the exchange closes the connection, so
        the next pick starts on a fresh socket with an empty buffer.

        Raises:
            ConnectionError: If the reference manager cannot be reached.
        """
        self._complete = False
        self.resolver.last = None
        logger.info("Starting citation exchange")
        try:
            self.connection.send(build_initiate_call(self.settings.template_version))
            while not self._complete:
                if self.connection.receive_once() == 0:
                    logger.warning("Connection closed before the exchange completed")
                    break
        except Exception:
            logger.warning("Citation exchange aborted, dropping the connection")
            self.connection.close()
            raise
        logger.info("Citation exchange finished")
        return self.resolver.last
