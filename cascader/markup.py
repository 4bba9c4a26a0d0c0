"""Improve the markup of documents for email clients.

- An HTML5 doctype is used if the source has no doctype, other doctypes are
  kept as they are.
- The ``<html>``, ``<head>`` and ``<body>`` elements are added if missing.
- A ``<meta>`` element declaring the content type and the charset is added if
  missing.

HTML parsers already create the missing elements, but trees may come from
elsewhere (built by hand, or modified by callbacks).

"""

import re
from xml.etree import ElementTree

from .html import ascii_lower

HTML5_DOCTYPE = '<!DOCTYPE html>'
DOCTYPE_RE = re.compile(r'<!DOCTYPE\s[^>]*>', re.IGNORECASE)


def improve_markup(root, original_html):
    """Improve the markup of the tree rooted at ``root``.

    The tree is modified in place, but a new root is created when ``root`` is
    not an ``<html>`` element.

    Return a ``(root, doctype)`` tuple, where ``doctype`` is the doctype
    found in ``original_html``, or the HTML5 doctype.

    """
    doctype = find_doctype(original_html)
    root = ensure_html_element(root)
    head = ensure_head_element(root)
    ensure_body_element(root)
    ensure_declared_charset(head)
    return root, doctype


def find_doctype(original_html, default=HTML5_DOCTYPE):
    """Return the doctype of ``original_html``, or ``default``."""
    match = DOCTYPE_RE.search(original_html or '')
    return match.group(0) if match else default


def ensure_html_element(root):
    if root.tag == 'html':
        return root
    html = ElementTree.Element('html')
    html.append(root)
    return html


def ensure_head_element(html):
    head = html.find('head')
    if head is None:
        head = ElementTree.Element('head')
        html.insert(0, head)
    return head


def ensure_body_element(html):
    body = html.find('body')
    if body is not None:
        return body
    body = ElementTree.Element('body')
    # Text directly in <html> goes in <body> too.
    body.text, html.text = html.text, None
    for child in list(html):
        if child.tag != 'head':
            html.remove(child)
            body.append(child)
    head = html.find('head')
    if head is not None and head.tail:
        body.text = (body.text or '') + head.tail
        head.tail = None
    html.append(body)
    return body


def ensure_declared_charset(head):
    for meta in head.iter('meta'):
        if ascii_lower(meta.get('http-equiv', '')) == 'content-type':
            return
    head.append(ElementTree.Element('meta', {
        'http-equiv': 'Content-Type',
        'content': 'text/html; charset=UTF-8',
    }))
