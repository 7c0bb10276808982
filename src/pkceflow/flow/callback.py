"""Loopback HTTP listener that captures the authorization redirect.

:class:`CallbackListener` binds a local HTTP server on the port and path of
the client's ``redirect_uri``, serves it from a daemon thread, and hands the
first matching request's query parameters back to the caller through a
one-shot :class:`concurrent.futures.Future`.

Lifecycle::

    IDLE --start()--> LISTENING --first callback--> COMPLETED
                          |
                          +--timeout / abort / shutdown--> CLOSED

The listener is shut down, and its port released, before :meth:`wait`
returns or raises. Used as a context manager it is also shut down when the
waiting thread is interrupted.
"""

from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import Future, InvalidStateError
from concurrent.futures import TimeoutError as FutureTimeoutError
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import parse_qsl, urlsplit

from pkceflow.exceptions import BindError, CallbackAbortedError, CallbackTimeoutError
from pkceflow.models import CallbackResult

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
DEFAULT_PATH = "/auth/callback"

CLOSE_PAGE = (
    "<html><body>Authorization received. This window will close automatically."
    "<script>window.close();</script></body></html>"
)


class ListenerState(str, enum.Enum):
    """Lifecycle states of a :class:`CallbackListener`."""

    IDLE = "idle"
    LISTENING = "listening"
    COMPLETED = "completed"
    CLOSED = "closed"


def parse_query_string(query: str) -> dict[str, str]:
    """Parse a raw redirect query string into a flat mapping.

    Values are percent-decoded. Segments without ``=`` and pairs with an
    empty value are skipped; when a key repeats, the last value wins.

    Example::

        >>> parse_query_string("code=ABC123&state=xyz&state=overwritten&foo")
        {'code': 'ABC123', 'state': 'overwritten'}
    """
    return dict(parse_qsl(query))


class _CallbackServer(ThreadingHTTPServer):
    """HTTP server carrying the accepted path and the one-shot result."""

    daemon_threads = True
    # No other socket may share the port the authorization code arrives on.
    allow_reuse_port = False

    def __init__(
        self,
        address: tuple[str, int],
        callback_path: str,
        result: Future[CallbackResult],
    ) -> None:
        self.callback_path = callback_path
        self.result = result
        super().__init__(address, _CallbackHandler)

    def resolve(self, callback: CallbackResult) -> None:
        try:
            self.result.set_result(callback)
        except InvalidStateError:
            logger.debug("Callback already handled; ignoring repeated request")


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackServer

    # Browsers open speculative connections that never send a request.
    timeout = 10

    def do_GET(self) -> None:
        parsed = urlsplit(self.path)
        if parsed.path != self.server.callback_path:
            self.send_error(404, "Not Found")
            return

        params = parse_query_string(parsed.query)

        body = CLOSE_PAGE.encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)
        self.wfile.flush()

        self.server.resolve(CallbackResult(params=params))

    def log_request(self, code: Any = "-", size: Any = "-") -> None:
        # The request line carries the authorization code; log the path only.
        logger.debug("%s %s -> %s", self.command, urlsplit(self.path).path, code)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("callback listener: " + format, *args)


class CallbackListener:
    """Single-shot loopback listener for the OAuth redirect.

    Args:
        host: Interface to bind. Defaults to the IPv4 loopback.
        port: TCP port to bind. ``0`` picks a free port; the bound port is
            available as :attr:`port` after :meth:`start`.
        path: Exact request path that counts as the callback. Any other
            path is answered with 404 and ignored.

    Example::

        with CallbackListener(port=3000) as listener:
            webbrowser.open(auth_url)
            result = listener.wait(timeout=300)
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        path: str = DEFAULT_PATH,
    ) -> None:
        self.host = host
        self.port = port
        self.path = path
        self._state = ListenerState.IDLE
        self._result: Future[CallbackResult] = Future()
        self._server: Optional[_CallbackServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> ListenerState:
        return self._state

    @property
    def url(self) -> str:
        """The callback URL this listener answers on."""
        return f"http://{self.host}:{self.port}{self.path}"

    def start(self) -> CallbackListener:
        """Bind the port and begin serving on a background thread.

        Raises:
            BindError: If the port cannot be bound (already in use,
                permission denied, unknown host).
            RuntimeError: If the listener was already started.
        """
        if self._state is not ListenerState.IDLE:
            raise RuntimeError(f"Callback listener cannot start from state {self._state.value}")

        try:
            server = _CallbackServer((self.host, self.port), self.path, self._result)
        except OSError as exc:
            raise BindError(
                f"Cannot listen for the OAuth callback on {self.host}:{self.port}: "
                f"{exc.strerror or exc}"
            ) from exc

        self._server = server
        self.port = server.server_address[1]
        self._thread = threading.Thread(
            target=server.serve_forever,
            kwargs={"poll_interval": 0.1},
            name="pkceflow-callback",
            daemon=True,
        )
        self._thread.start()
        self._state = ListenerState.LISTENING
        logger.debug("Callback listener bound on %s", self.url)
        return self

    def wait(self, timeout: Optional[float] = None) -> CallbackResult:
        """Block until the callback arrives, then shut the listener down.

        Args:
            timeout: Seconds to wait. ``None`` waits indefinitely.

        Returns:
            The parameters of the first request to the callback path.

        Raises:
            CallbackTimeoutError: If *timeout* elapses first.
            CallbackAbortedError: If :meth:`abort` was called.
            RuntimeError: If the listener was never started, or was closed
                before a callback arrived.
        """
        if self._state is ListenerState.IDLE:
            raise RuntimeError("Callback listener has not been started")
        if self._state is ListenerState.CLOSED and not self._result.done():
            raise RuntimeError("Callback listener is closed; no callback can arrive")

        try:
            result = self._result.result(timeout=timeout)
        except FutureTimeoutError as exc:
            raise CallbackTimeoutError(
                f"No authorization callback received on {self.url} "
                f"within {timeout:g} seconds"
            ) from exc
        else:
            self._state = ListenerState.COMPLETED
            return result
        finally:
            self.shutdown()

    def abort(self, reason: str = "Authorization wait was cancelled") -> None:
        """Wake a pending :meth:`wait` with :class:`CallbackAbortedError`."""
        try:
            self._result.set_exception(CallbackAbortedError(reason))
        except InvalidStateError:
            pass

    def shutdown(self) -> None:
        """Stop serving and release the port. Safe to call repeatedly."""
        server, thread = self._server, self._thread
        self._server = None
        self._thread = None
        if server is not None:
            server.shutdown()
            server.server_close()
            logger.debug("Callback listener on %s:%s closed", self.host, self.port)
        if thread is not None:
            thread.join()
        if self._state is ListenerState.LISTENING:
            self._state = ListenerState.CLOSED

    def __enter__(self) -> CallbackListener:
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()
