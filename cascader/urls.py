"""Various utility functions and classes for URL management."""

import codecs
import contextlib
import os.path
import re
import sys
import traceback
import zlib
from gzip import GzipFile
from io import BytesIO, StringIO
from pathlib import Path
from urllib.parse import quote, urljoin
from urllib.request import Request, pathname2url, urlopen

from . import __version__
from .logger import LOGGER

# See https://stackoverflow.com/a/11687993/1162888
# Both are needed in Python 3 as the re module does not like to mix
# https://datatracker.ietf.org/doc/html/rfc3986#section-3.1
UNICODE_SCHEME_RE = re.compile('^([a-zA-Z][a-zA-Z0-9.+-]+):')
BYTES_SCHEME_RE = re.compile(b'^([a-zA-Z][a-zA-Z0-9.+-]+):')

# getfilesystemencoding() on Linux is sometimes stupid…
FILESYSTEM_ENCODING = sys.getfilesystemencoding()
try:  # pragma: no cover
    if codecs.lookup(FILESYSTEM_ENCODING).name == 'ascii':
        FILESYSTEM_ENCODING = 'utf-8'
except LookupError:  # pragma: no cover
    FILESYSTEM_ENCODING = 'utf-8'

HTTP_HEADERS = {
    'User-Agent': f'Cascader {__version__}',
    'Accept': 'text/css,*/*;q=0.1',
    'Accept-Encoding': 'gzip, deflate',
}

# Attributes holding URLs that mail clients need to be absolute.
URL_ATTRIBUTES = {
    'a': ('href',),
    'area': ('href',),
    'img': ('src',),
    'link': ('href',),
    'script': ('src',),
    'source': ('src',),
    'table': ('background',),
    'td': ('background',),
    'th': ('background',),
    'body': ('background',),
}


class StreamingGzipFile(GzipFile):
    def __init__(self, fileobj):
        GzipFile.__init__(self, fileobj=fileobj)
        self.fileobj_to_close = fileobj

    def close(self):
        GzipFile.close(self)
        self.fileobj_to_close.close()

    def seekable(self):
        return False


def iri_to_uri(url):
    """Turn a Unicode IRI into an ASCII-only URI that conforms to RFC 3986."""
    if url.startswith('data:'):
        # Data URIs can be huge, but don’t need this anyway.
        return url
    # Use UTF-8 as per RFC 3987 (IRI), except for file://
    url = url.encode(FILESYSTEM_ENCODING if url.startswith('file:') else 'utf-8')
    # This is a full URI, not just a component. Only %-encode characters
    # that are not allowed at all in URIs. Everthing else is "safe":
    # * Reserved characters: /:?#[]@!$&'()*+,;=
    # * Unreserved characters: ASCII letters, digits and -._~
    #   Of these, only '~' is not in urllib’s "always safe" list.
    # * '%' to avoid double-encoding
    return quote(url, safe=b"/:?#[]@!$&'()*+,;=~%")


def path2url(path):
    """Return file URL of `path`.

    Accepts 'str', 'bytes' or 'Path', returns 'str'.

    """
    # Ensure 'str'
    if isinstance(path, Path):
        path = str(path)
    elif isinstance(path, bytes):
        path = path.decode(FILESYSTEM_ENCODING)
    # If a trailing path.sep is given, keep it
    wants_trailing_slash = path.endswith((os.path.sep, '/'))
    path = os.path.abspath(path)
    if wants_trailing_slash or os.path.isdir(path):
        # Make sure directory names have a trailing slash.
        # Otherwise relative URIs are resolved from the parent directory.
        path += os.path.sep
        wants_trailing_slash = True
    path = pathname2url(path)
    # On Windows pathname2url cuts off trailing slash
    if wants_trailing_slash and not path.endswith('/'):
        path += '/'  # pragma: no cover
    if path.startswith('///'):
        # On Windows pathname2url(r'C:\foo') is apparently '///C:/foo'
        # That enough slashes already.
        return f'file:{path}'  # pragma: no cover
    else:
        return f'file://{path}'


def url_is_absolute(url):
    """Return whether an URL (bytes or string) is absolute."""
    scheme = UNICODE_SCHEME_RE if isinstance(url, str) else BYTES_SCHEME_RE
    return bool(scheme.match(url))


def get_url_attribute(element, attr_name, base_url):
    """Get the URI corresponding to the ``attr_name`` attribute.

    Return ``None`` if the attribute is empty or missing, otherwise return an
    URI made absolute with ``base_url``.

    """
    value = element.get(attr_name, '').strip()
    if value:
        return url_join(base_url, value)


def url_join(base_url, url):
    """Like urllib.urljoin, but keep absolute URLs and encode IRIs."""
    if url_is_absolute(url):
        return iri_to_uri(url)
    return iri_to_uri(urljoin(base_url, url))


def ensure_url(string):
    """Get a ``scheme://path`` URL from ``string``.

    If ``string`` looks like an URL, return it unchanged. Otherwise assume a
    filename and convert it to a ``file://`` URL.

    """
    return string if url_is_absolute(string) else path2url(string)


def make_urls_absolute(tree, base_url):
    """Rewrite relative URLs in link and resource attributes of ``tree``.

    Fragment-only references (``href="#top"``) are left alone, so that
    in-document anchors keep working.

    """
    for element in tree.iter():
        for attr_name in URL_ATTRIBUTES.get(element.tag, ()):
            value = element.get(attr_name, '').strip()
            if not value or value.startswith('#') or url_is_absolute(value):
                continue
            element.set(
                attr_name, get_url_attribute(element, attr_name, base_url))


class URLFetchingError(IOError):
    """Some error happened when fetching an URL."""


class FatalURLFetchingError(IOError):
    """Some error happened when fetching an URL and must stop the transformation."""


class URLFetcher:
    """Fetcher of external resources such as stylesheets.

    Another class inheriting from this class, with a ``fetch`` method that has a
    compatible signature, can be given as the ``url_fetcher`` argument to
    :class:`cascader.CSS` or :class:`cascader.providers.URLProvider`.

    """

    def __init__(self, timeout=10, ssl_context=None, http_headers=None,
                 allowed_protocols=None):
        #: The number of seconds before HTTP requests are dropped.
        self.timeout = timeout
        #: An SSL context used for HTTP requests.
        self.ssl_context = ssl_context
        #: Additional HTTP headers used for HTTP requests.
        self.http_headers = http_headers
        #: A set of authorized protocols.
        self.allowed_protocols = allowed_protocols

    def validate(self, url):
        """Return the ASCII URI to request for ``url``.

        :raises: :obj:`ValueError` for relative URLs and URLs whose protocol is
            not allowed.

        """
        match = UNICODE_SCHEME_RE.match(url)
        if not match:
            raise ValueError(f'Not an absolute URI: {url}')
        protocol = match.group(1).lower()
        if self.allowed_protocols is not None:
            if protocol not in self.allowed_protocols:
                raise ValueError(f'URI uses disallowed protocol: {url}')
        if protocol == 'file':
            # urllib keeps queries and fragments in filenames.
            url = url.split('?', 1)[0].split('#', 1)[0]
        return iri_to_uri(url)

    def fetch(self, url):
        """Fetch a given URL.

        :raises: An exception indicating failure, e.g. :obj:`ValueError` on
            syntactically invalid URL.
        :returns: A :obj:`URLFetcherResource` instance.

        """
        headers = {**HTTP_HEADERS, **(self.http_headers or {})}
        response = urlopen(
            Request(self.validate(url), headers=headers), timeout=self.timeout,
            context=self.ssl_context)
        response_headers = response.headers
        resource = {
            'url': response.url,
            'mime_type': response_headers.get_content_type(),
            'encoding': response_headers.get_param('charset'),
        }
        content_encoding = response_headers.get('Content-Encoding')
        if content_encoding == 'gzip':
            resource['file_obj'] = StreamingGzipFile(fileobj=response)
        elif content_encoding == 'deflate':
            with response:
                data = response.read()
            try:
                resource['string'] = zlib.decompress(data)
            except zlib.error:
                # Raw deflate stream, without zlib header and checksum.
                resource['string'] = zlib.decompress(data, -zlib.MAX_WBITS)
        else:
            resource['file_obj'] = response
        return URLFetcherResource(**resource)

    def __call__(self, url):
        return self.fetch(url)


#: The fetcher used when none is given to :class:`cascader.CSS`.
default_url_fetcher = URLFetcher()


class URLFetcherResource:
    """The result of a URL fetcher invocation."""
    def __init__(self, url, string=None, file_obj=None, mime_type=None,
                 encoding=None):
        #: The file-like object giving the content of the resource.
        if string is None:
            assert file_obj is not None, 'string or file_obj must be given'
            self.file_obj = file_obj
        elif isinstance(string, str):
            self.file_obj = StringIO(string)
        else:
            self.file_obj = BytesIO(string)
        #: The URL of the resource, after redirections.
        self.url = url
        #: An optional MIME type extracted e.g. from a *Content-Type* header.
        self.mime_type = mime_type
        #: An optional character encoding, extracted from a *charset* parameter in a
        #: *Content-Type* header.
        self.encoding = encoding


@contextlib.contextmanager
def fetch(url_fetcher, url):
    """Fetch an ``url`` with ``url_fetcher`` and clean up.

    Fatal errors must raise a ``FatalURLFetchingError`` that stops the
    transformation. All other exceptions are catched and raise an
    ``URLFetchingError``, that is usually catched by the code that fetches the
    resource and emits an error.

    """
    try:
        resource = url_fetcher(url)
    except FatalURLFetchingError:
        raise
    except Exception as exception:
        raise URLFetchingError(f'{type(exception).__name__}: {exception}')

    assert isinstance(resource, URLFetcherResource), (
        'URL fetcher must return a URLFetcherResource instance')

    try:
        yield resource
    finally:
        try:
            resource.file_obj.close()
        except Exception:  # pragma: no cover
            # May already be closed or something.
            # This is just cleanup anyway: log but make it non-fatal.
            LOGGER.warning(
                'Error when closing stream for %s:\n%s',
                url, traceback.format_exc())
