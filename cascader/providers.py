"""Find the stylesheets referenced by ``<link>`` elements.

A provider is any object with a ``find_stylesheet(name)`` method, returning a
:class:`cascader.css.Stylesheet` or ``None`` when it doesn't know ``name``.
Providers are tried in order by a :class:`ProviderList`.

"""

import os.path
from pathlib import Path

from . import CSS
from .logger import LOGGER
from .urls import URLFetchingError, default_url_fetcher, url_is_absolute


class CSSNotFound(LookupError):
    """No provider knows a stylesheet."""
    def __init__(self, name, providers=()):
        self.name = name
        self.providers = list(providers)
        super().__init__(
            f'Could not find stylesheet {name!r}, tried '
            f'{len(self.providers)} provider(s)')


class FilesystemProvider:
    """Stylesheets stored in a directory.

    Names are paths relative to ``path``, a leading slash is allowed and query
    strings are ignored, so that ``/css/mail.css?v=2`` is ``css/mail.css`` in
    ``path``. Names leading outside of ``path`` are never found.

    """
    def __init__(self, path=None):
        self.path = Path(os.getcwd() if path is None else path)

    def __repr__(self):
        return f'<{type(self).__name__} {str(self.path)!r}>'

    def find_stylesheet(self, name):
        relative = name.split('?', 1)[0].split('#', 1)[0].lstrip('/')
        if not relative:
            return None
        root = self.path.resolve()
        filename = (root / relative).resolve()
        if root not in filename.parents:
            LOGGER.warning(
                'Stylesheet %r is outside of %s, ignored', name, root)
            return None
        if not filename.is_file():
            return None
        return CSS(filename=filename, name=str(filename))


class URLProvider:
    """Stylesheets fetched from absolute URLs.

    Protocol-relative URLs (``//example.com/mail.css``) are fetched with
    ``scheme``.

    """
    def __init__(self, url_fetcher=default_url_fetcher, scheme='https'):
        self.url_fetcher = url_fetcher
        self.scheme = scheme

    def __repr__(self):
        return f'<{type(self).__name__} {self.scheme}>'

    def find_stylesheet(self, name):
        url = f'{self.scheme}:{name}' if name.startswith('//') else name
        if not url_is_absolute(url):
            return None
        try:
            stylesheet = CSS(
                url=url, name=url, url_fetcher=self._check_mime_type)
        except URLFetchingError as exception:
            LOGGER.error('Failed to load stylesheet at %s: %s', url, exception)
            LOGGER.debug('Error while loading stylesheet:', exc_info=exception)
            return None
        return stylesheet

    def _check_mime_type(self, url):
        resource = self.url_fetcher(url)
        if resource.mime_type not in (None, 'text/css'):
            resource.file_obj.close()
            raise ValueError(
                f'Unsupported stylesheet type {resource.mime_type} for {url}')
        return resource


class MemoryProvider:
    """Stylesheets given as a ``{name: css_text}`` mapping."""
    def __init__(self, stylesheets=None):
        self.stylesheets = dict(stylesheets or {})

    def __repr__(self):
        return f'<{type(self).__name__} {sorted(self.stylesheets)!r}>'

    def find_stylesheet(self, name):
        for key in (name, name.split('?', 1)[0], '/' + name.lstrip('/')):
            if key in self.stylesheets:
                return CSS(string=self.stylesheets[key], name=key)
        return None


class ProviderList:
    """An ordered list of providers, asked one after the other."""
    def __init__(self, providers=()):
        if isinstance(providers, ProviderList):
            providers = providers.providers
        self.providers = list(providers)

    def __repr__(self):
        return f'<{type(self).__name__} {self.providers!r}>'

    def __iter__(self):
        return iter(self.providers)

    def __len__(self):
        return len(self.providers)

    def __eq__(self, other):
        return (
            isinstance(other, ProviderList) and
            self.providers == other.providers)

    def append(self, provider):
        self.providers.append(provider)

    def prepend(self, provider):
        self.providers.insert(0, provider)

    def find_stylesheet(self, name):
        """Return the first stylesheet found for ``name``, or ``None``."""
        for provider in self.providers:
            stylesheet = provider.find_stylesheet(name)
            if stylesheet is not None:
                return stylesheet
        return None

    def get_stylesheet(self, name):
        """Return the first stylesheet found for ``name``.

        :raises: :class:`CSSNotFound` if no provider knows ``name``.

        """
        stylesheet = self.find_stylesheet(name)
        if stylesheet is None:
            raise CSSNotFound(name, self.providers)
        return stylesheet
