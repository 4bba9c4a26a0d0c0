"""Document transformation management."""

from . import CSS, DEFAULT_OPTIONS
from .css import Stylesheet
from .html import find_stylesheets, parse_html, serialize_html
from .inliner import inline
from .logger import LOGGER, PROGRESS_LOGGER
from .markup import find_doctype, improve_markup
from .providers import FilesystemProvider, ProviderList
from .urls import make_urls_absolute


class Document:
    """An HTML document whose stylesheets are inlined by :meth:`transform`.

    :param str html:
        The HTML source of the document.
    :param asset_providers:
        An iterable of providers used to find the stylesheets of
        ``<link>`` elements with relative URLs. Defaults to a
        :class:`cascader.providers.FilesystemProvider` for the current
        directory.
    :param external_asset_providers:
        An iterable of providers used for ``<link>`` elements with absolute
        URLs. Empty by default: use a :class:`cascader.providers.URLProvider`
        to allow network access.
    :type before_transformation: :term:`callable`
    :param before_transformation:
        Called with the root element and the document before inlining.
    :type after_transformation: :term:`callable`
    :param after_transformation:
        Called with the root element and the document before serialization.
    :param str base_url:
        If given, relative URLs in ``href`` and ``src`` attributes are made
        absolute with this base.

    """
    def __init__(self, html, asset_providers=None, external_asset_providers=None,
                 before_transformation=None, after_transformation=None,
                 base_url=None):
        #: The HTML source of the document.
        self.html = html
        if asset_providers is None:
            asset_providers = [FilesystemProvider()]
        self.asset_providers = asset_providers
        self.external_asset_providers = external_asset_providers or ()
        self.before_transformation = before_transformation
        self.after_transformation = after_transformation
        self.base_url = base_url
        #: Stylesheets added with :meth:`add_css`, inlined after the stylesheets
        #: of the document.
        self.stylesheets = []
        #: Diagnostics of the last call to :meth:`transform`.
        self.diagnostics = []

    @property
    def asset_providers(self):
        """The :class:`cascader.providers.ProviderList` for relative URLs."""
        return self._asset_providers

    @asset_providers.setter
    def asset_providers(self, providers):
        self._asset_providers = ProviderList(providers)

    @property
    def external_asset_providers(self):
        """The :class:`cascader.providers.ProviderList` for absolute URLs."""
        return self._external_asset_providers

    @external_asset_providers.setter
    def external_asset_providers(self, providers):
        self._external_asset_providers = ProviderList(providers)

    def add_css(self, css, name=None):
        """Add a stylesheet, given as CSS text or as a stylesheet object."""
        if not isinstance(css, Stylesheet):
            css = CSS(string=css, name=name or 'added CSS')
        self.stylesheets.append(css)

    def transform(self, **options):
        """Inline the stylesheets and return the new HTML source.

        :param options:
            The ``options`` parameter includes by default the
            :data:`cascader.DEFAULT_OPTIONS` values.
        :returns: The transformed HTML source, as a :obj:`str`.

        """
        for unknown in set(options) - set(DEFAULT_OPTIONS):
            LOGGER.warning('Unknown transformation option: %s.', unknown)
        options = {**DEFAULT_OPTIONS, **options}

        PROGRESS_LOGGER.info('Step 1 - Parsing HTML')
        root = parse_html(self.html)
        if self.before_transformation is not None:
            self.before_transformation(root, self)

        PROGRESS_LOGGER.info('Step 2 - Finding stylesheets')
        stylesheets = []
        for element, stylesheet in list(
                find_stylesheets(
                    root, self.asset_providers, self.external_asset_providers)):
            if stylesheet is None:
                # Keep the link, nothing has been inlined from it.
                continue
            stylesheets.append(stylesheet)
            if not options['keep_style_elements']:
                remove_element(root, element)
        stylesheets.extend(self.stylesheets)

        PROGRESS_LOGGER.info('Step 3 - Inlining CSS')
        self.diagnostics = inline(root, stylesheets, strict=options['strict'])
        if self.base_url:
            make_urls_absolute(root, self.base_url)

        PROGRESS_LOGGER.info('Step 4 - Improving markup')
        if options['normalize']:
            root, doctype = improve_markup(root, self.html)
        else:
            doctype = find_doctype(self.html, default=None)
        if self.after_transformation is not None:
            self.after_transformation(root, self)

        PROGRESS_LOGGER.info('Step 5 - Serializing HTML')
        return serialize_html(root, doctype)


def remove_element(root, element):
    """Remove ``element`` from the tree rooted at ``root``, keeping its tail."""
    for parent in root.iter():
        children = list(parent)
        if element not in children:
            continue
        index = children.index(element)
        if element.tail:
            if index:
                previous = children[index - 1]
                previous.tail = (previous.tail or '') + element.tail
            else:
                parent.text = (parent.text or '') + element.tail
        parent.remove(element)
        return
