"""Helpers for tests."""

import contextlib
import functools
import sys
import threading
import wsgiref.simple_server
from pathlib import Path

from cascader.css import parse_stylesheet, parse_style_attribute
from cascader.html import parse_html
from cascader.inliner import inline
from cascader.logger import capture_logs  # noqa: F401
from cascader.urls import path2url


def resource_path(name):
    """Return the absolute path of the resource called ``name``."""
    return Path(__file__).parent / 'resources' / name


# Dummy filename, but in the right directory.
BASE_URL = path2url(resource_path('<test>'))


def assert_no_logs(function):
    """Decorator that asserts that nothing is logged in a function."""
    @functools.wraps(function)
    def wrapper(*args, **kwargs):
        with capture_logs() as logs:
            try:
                function(*args, **kwargs)
            except Exception:  # pragma: no cover
                if logs:
                    print(f'{len(logs)} errors logged:', file=sys.stderr)
                    for message in logs:
                        print(message, file=sys.stderr)
                raise
            else:
                if logs:  # pragma: no cover
                    for message in logs:
                        print(message, file=sys.stderr)
                    raise AssertionError(f'{len(logs)} errors logged')
    return wrapper


def render(html, css, name='example', strict=False):
    """Parse ``html``, inline ``css`` in it and return the root element."""
    root, _ = render_with_diagnostics(html, css, name, strict)
    return root


def render_with_diagnostics(html, css, name='example', strict=False):
    """Like :func:`render`, but return a ``(root, diagnostics)`` tuple."""
    root = parse_html(html)
    diagnostics = inline(root, [parse_stylesheet(css, name)], strict)
    return root, diagnostics


def styling(element):
    """Return the ``style`` attribute of ``element`` as a list of pairs.

    Important declarations have their value suffixed with ``!important``.

    """
    declarations, errors = parse_style_attribute(element.get('style'))
    assert not errors, errors
    return [
        (declaration.name, declaration.value + (
            ' !important' if declaration.important else ''))
        for declaration in declarations]


@contextlib.contextmanager
def http_server(handlers):
    """Serve ``{path: handler}`` over HTTP and yield the root URL.

    Handlers are called with the WSGI environment and return a ``(body,
    headers)`` tuple.

    """
    def wsgi_app(environ, start_response):
        handler = handlers.get(environ['PATH_INFO'])
        if handler:
            status = '200 OK'
            response, headers = handler(environ)
        else:  # pragma: no cover
            status = '404 Not Found'
            response, headers = b'', []
        start_response(status, headers)
        return [response]

    # Port 0: let the OS pick an available port number
    server = wsgiref.simple_server.make_server(
        '127.0.0.1', 0, wsgi_app, handler_class=QuietHandler)
    _host, port = server.socket.getsockname()
    thread = threading.Thread(target=server.serve_forever)
    thread.start()
    try:
        yield f'http://127.0.0.1:{port}'
    finally:
        server.shutdown()
        thread.join()
        server.server_close()


class QuietHandler(wsgiref.simple_server.WSGIRequestHandler):
    def log_message(self, format, *args):
        pass
