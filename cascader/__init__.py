"""Inline CSS in HTML documents, for email clients.

The public API is what is accessible from this "root" packages without
importing sub-modules.

"""

import contextlib
from pathlib import Path

import tinycss2

VERSION = __version__ = '1.0.0'

#: Default values for command-line and Python API options. See
#: :func:`__main__.main` to learn more about specific options for
#: command-line.
#:
#: :param bool strict:
#:     Whether malformed ``style`` attributes are reported as diagnostics and
#:     left untouched, instead of being fixed by CSS error recovery.
#: :param bool keep_style_elements:
#:     Whether ``<style>`` and ``<link rel=stylesheet>`` elements are kept in
#:     the document once their rules have been inlined.
#: :param bool normalize:
#:     Whether a doctype, the ``<html>``, ``<head>`` and ``<body>`` elements
#:     and a charset declaration are added when missing.
DEFAULT_OPTIONS = {
    'strict': False,
    'keep_style_elements': False,
    'normalize': True,
}

__all__ = [
    'CSS', 'DEFAULT_OPTIONS', 'VERSION', 'Document', '__version__',
    'default_url_fetcher', 'inline']


# Import after setting the version, as the version is used in other modules
from .urls import (  # noqa: I001, E402
    fetch, default_url_fetcher, path2url, ensure_url, url_is_absolute)
from .css import Stylesheet, preprocess_stylesheet  # noqa: E402
from .logger import PROGRESS_LOGGER  # noqa: E402


class CSS(Stylesheet):
    """CSS stylesheet parsed by tinycss2.

    You can just create an instance with a positional argument:
    ``css = CSS(something)``
    The class will try to guess if the input is a filename, an absolute URL,
    or a :term:`file object`.

    Alternatively, use **one** named argument so that no guessing is involved:

    :type filename: str or pathlib.Path
    :param filename:
        A filename, relative to the current directory, or absolute.
    :param str url:
        An absolute, fully qualified URL.
    :type file_obj: :term:`file object`
    :param file_obj:
        Any object with a ``read`` method.
    :param str string:
        A string of CSS source.

    Specifying multiple inputs is an error:
    ``CSS(filename="foo.css", url="localhost://bar.css")``
    will raise a :obj:`TypeError`.

    You can also pass optional named arguments:

    :param str encoding:
        Force the source character encoding.
    :param str name:
        The name of the stylesheet used in diagnostics. Defaults to the
        filename, the URL, the ``name`` of the file object, or ``'inline'``.
    :type base_url: str or pathlib.Path
    :param base_url:
        The base used to resolve relative URLs.
    :type url_fetcher: :term:`callable`
    :param url_fetcher:
        A function or other callable with the same signature as
        :func:`default_url_fetcher` called to fetch the stylesheet.

    """
    def __init__(self, guess=None, filename=None, url=None, file_obj=None,
                 string=None, encoding=None, name=None, base_url=None,
                 url_fetcher=default_url_fetcher):
        PROGRESS_LOGGER.info(
            'Fetching and parsing CSS - %s',
            filename or url or getattr(file_obj, 'name', 'CSS string'))
        if isinstance(base_url, Path):
            base_url = str(base_url)
        result = _select_source(
            guess, filename, url, file_obj, string,
            base_url=base_url, url_fetcher=url_fetcher)
        with result as (source_type, source, base_url, protocol_encoding, origin):
            if source_type == 'file_obj':
                source = source.read()
            if isinstance(source, str):
                # unicode, no encoding
                stylesheet = tinycss2.parse_stylesheet(
                    source, skip_comments=True, skip_whitespace=True)
            else:
                stylesheet, encoding = tinycss2.parse_stylesheet_bytes(
                    source, environment_encoding=encoding,
                    protocol_encoding=protocol_encoding,
                    skip_comments=True, skip_whitespace=True)
        if name is None:
            name = origin
        self.base_url = base_url
        super().__init__(name, preprocess_stylesheet(stylesheet, name))


@contextlib.contextmanager
def _select_source(guess=None, filename=None, url=None, file_obj=None,
                   string=None, base_url=None, url_fetcher=default_url_fetcher):
    """If only one input is given, return it with normalized ``base_url``.

    The context manager gives a ``(source_type, source, base_url,
    protocol_encoding, origin)`` tuple, where ``origin`` is a human-readable
    name for the source.

    """
    if base_url is not None:
        base_url = ensure_url(base_url)

    selected_params = [
        param for param in (guess, filename, url, file_obj, string) if
        param is not None]
    if len(selected_params) != 1:
        source = ', '.join(str(param) for param in selected_params) or 'nothing'
        raise TypeError(f'Expected exactly one source, got {source}')
    elif guess is not None:
        if hasattr(guess, 'read'):
            type_ = 'file_obj'
        elif isinstance(guess, Path):
            type_ = 'filename'
        elif url_is_absolute(guess):
            type_ = 'url'
        else:
            type_ = 'filename'
        result = _select_source(
            base_url=base_url, url_fetcher=url_fetcher, **{type_: guess})
        with result as result:
            yield result
    elif filename is not None:
        if base_url is None:
            base_url = path2url(filename)
        with open(filename, 'rb') as file_obj:
            yield 'file_obj', file_obj, base_url, None, str(filename)
    elif url is not None:
        with fetch(url_fetcher, url) as resource:
            if base_url is None:
                base_url = resource.url
            yield 'file_obj', resource.file_obj, base_url, resource.encoding, url
    elif file_obj is not None:
        # filesystem file-like objects have a 'name' attribute.
        name = getattr(file_obj, 'name', None)
        if not isinstance(name, str):
            name = None
        if base_url is None:
            # Some streams have a .name like '<stdin>', not a filename.
            if name and not name.startswith('<'):
                base_url = ensure_url(name)
        yield 'file_obj', file_obj, base_url, None, name or 'inline'
    else:
        assert string is not None
        yield 'string', string, base_url, None, 'inline'


def inline(html, stylesheets=(), **options):
    """Inline ``stylesheets`` in an ``html`` string and return the new HTML.

    This is a shortcut for a :class:`Document` with the given stylesheets
    added, see :meth:`Document.transform` for ``options``.

    """
    document = Document(html)
    for stylesheet in stylesheets:
        document.add_css(stylesheet)
    return document.transform(**options)


# Work around circular imports.
from .document import Document  # noqa: I001, E402
