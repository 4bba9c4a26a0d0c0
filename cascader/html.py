"""Parse, search and serialize HTML documents.

Documents are parsed by html5lib into ElementTree elements, without
namespaces, so that tag names are plain local names.

"""

import re

import html5lib

from .css import parse_stylesheet
from .logger import LOGGER
from .urls import url_is_absolute

# https://html.spec.whatwg.org/multipage/#space-character
HTML_WHITESPACE = ' \t\n\f\r'
HTML_SPACE_SEPARATED_TOKENS_RE = re.compile(f'[^{HTML_WHITESPACE}]+')

#: Elements with this attribute are never collected nor removed.
IGNORE_ATTRIBUTE = 'data-cascader-ignore'


def ascii_lower(string):
    r"""Transform (only) ASCII letters to lower case: A-Z is mapped to a-z.

    This is used for `ASCII case-insensitive
    <https://whatwg.org/C#ascii-case-insensitive>`_ matching.

    This is different from the :meth:`str.lower` method of Unicode strings
    which also affect non-ASCII characters,
    sometimes mapping them into the ASCII range:

    >>> keyword = 'Bac\N{KELVIN SIGN}ground'
    >>> assert keyword.lower() == 'background'
    >>> assert ascii_lower(keyword) != keyword.lower()
    >>> assert ascii_lower(keyword) == 'bac\N{KELVIN SIGN}ground'

    """
    # This turns out to be faster than unicode.translate()
    return string.encode().lower().decode()


def element_has_link_type(element, link_type):
    """Return whether element has a ``rel`` attribute with given link type."""
    tokens = HTML_SPACE_SEPARATED_TOKENS_RE.findall(element.get('rel', ''))
    return any(ascii_lower(token) == link_type for token in tokens)


def element_matches_media(element):
    """Return whether the ``media`` attribute of element applies to screens.

    Only media types are evaluated, media features are not supported.

    """
    media_attr = element.get('media', '').strip() or 'all'
    media = [
        ascii_lower(media_type.strip()) for media_type in media_attr.split(',')]
    for media_type in media:
        tokens = media_type.split()
        if tokens[:1] == ['only']:
            tokens = tokens[1:]
        if tokens in (['all'], ['screen']):
            return True
    return False


def get_child_text(element):
    """Return the text directly in the element, not descendants."""
    content = [element.text] if element.text else []
    for child in element:
        if child.tail:
            content.append(child.tail)
    return ''.join(content)


def parse_html(source):
    """Parse an HTML string into the root ElementTree element."""
    return html5lib.parse(source, namespaceHTMLElements=False)


def serialize_html(root, doctype=None):
    """Serialize an ElementTree element, with an optional doctype."""
    html = html5lib.serialize(
        root, tree='etree', quote_attr_values='always',
        omit_optional_tags=False, minimize_boolean_attributes=False)
    return f'{doctype}\n{html}' if doctype else html


def find_stylesheets(root, asset_providers, external_asset_providers):
    """Yield ``(element, stylesheet)`` tuples for stylesheets in ``root``.

    The output order is the same as the source order. ``<link>`` elements whose
    stylesheet can't be found are yielded with a ``None`` stylesheet, so that
    callers can decide what to do with them.

    """
    for element in root.iter():
        if element.tag not in ('style', 'link'):
            continue
        if element.get(IGNORE_ATTRIBUTE) is not None:
            continue
        mime_type = element.get('type', 'text/css').split(';', 1)[0].strip()
        # Only keep 'type/subtype' from 'type/subtype ; param1; param2'.
        if ascii_lower(mime_type) != 'text/css':
            continue
        if not element_matches_media(element):
            LOGGER.debug(
                'Ignored <%s> element for media %r', element.tag,
                element.get('media'))
            continue
        if element.tag == 'style':
            # Content is text that is directly in the <style> element, not its
            # descendants
            content = get_child_text(element)
            yield element, parse_stylesheet(content, '(style element)')
        elif element.tag == 'link' and element.get('href', '').strip():
            if not element_has_link_type(element, 'stylesheet') or \
                    element_has_link_type(element, 'alternate'):
                continue
            href = element.get('href').strip()
            if href.startswith('//') or url_is_absolute(href):
                providers = external_asset_providers
            else:
                providers = asset_providers
            stylesheet = providers.find_stylesheet(href)
            if stylesheet is None:
                LOGGER.error('Failed to load stylesheet at %s', href)
            yield element, stylesheet
