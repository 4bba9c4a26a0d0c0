"""Test the transformation of whole documents."""

from xml.etree import ElementTree

import pytest

from cascader import CSS, Document
from cascader.css import Stylesheet
from cascader.html import parse_html
from cascader.inliner import MalformedInlineStyle, UnsupportedSelector
from cascader.providers import (
    FilesystemProvider, MemoryProvider, ProviderList, URLProvider)
from cascader.urls import URLFetcherResource

from .testing_utils import assert_no_logs, capture_logs, resource_path, styling

SAMPLE_HTML = '<html><body><p>Hello world!</p></body></html>'


def transform(document, **options):
    """Transform ``document`` and return the root of the parsed result."""
    return parse_html(document.transform(**options))


@assert_no_logs
def test_attributes():
    document = Document(SAMPLE_HTML)
    assert document.html == SAMPLE_HTML
    assert document.stylesheets == []
    assert document.diagnostics == []
    assert document.base_url is None
    assert document.before_transformation is None
    assert document.after_transformation is None


@assert_no_logs
def test_default_providers():
    document = Document(SAMPLE_HTML)
    assert isinstance(document.asset_providers, ProviderList)
    provider, = document.asset_providers
    assert isinstance(provider, FilesystemProvider)
    assert isinstance(document.external_asset_providers, ProviderList)
    assert len(document.external_asset_providers) == 0


@assert_no_logs
def test_change_providers():
    document = Document(SAMPLE_HTML)
    old_list = document.asset_providers
    other_provider = MemoryProvider()
    document.asset_providers = [other_provider]
    assert isinstance(document.asset_providers, ProviderList)
    assert list(document.asset_providers) == [other_provider]
    document.asset_providers = old_list
    assert document.asset_providers == old_list
    document.external_asset_providers = [other_provider]
    assert list(document.external_asset_providers) == [other_provider]


@assert_no_logs
def test_add_css():
    document = Document(SAMPLE_HTML)
    document.add_css('p { color: green }')
    document.add_css('p { color: red }', name='red.css')
    stylesheet = CSS(string='p { margin: 0 }')
    document.add_css(stylesheet)
    assert [css.name for css in document.stylesheets] == [
        'added CSS', 'red.css', 'inline']
    assert document.stylesheets[2] is stylesheet


@assert_no_logs
def test_callbacks():
    calls = []

    def before(root, document):
        calls.append('before')
        assert isinstance(root, ElementTree.Element)
        assert root.find('.//p').get('style') is None
        root.find('.//p').set('class', 'added')

    def after(root, document):
        calls.append('after')
        assert root.find('.//p').get('style') == 'color: green'

    document = Document(
        '<body><p></p></body>', before_transformation=before,
        after_transformation=after)
    document.add_css('.added { color: green }')
    result = transform(document)
    assert calls == ['before', 'after']
    assert styling(result.find('.//p')) == [('color', 'green')]


@assert_no_logs
def test_callbacks_get_document():
    documents = []
    document = Document(
        SAMPLE_HTML,
        before_transformation=lambda root, document: documents.append(document),
        after_transformation=lambda root, document: documents.append(document))
    document.transform()
    assert documents == [document, document]


@assert_no_logs
def test_transform():
    document = Document('''
      <html>
        <head>
          <title>Greetings</title>
        </head>
        <body>
          <p>Hello, world!</p>
        </body>
      </html>
    ''')
    document.add_css('p { color: green; }')
    result = transform(document)
    assert result.find('head/title').text == 'Greetings'
    paragraph = result.find('body/p')
    assert paragraph.text == 'Hello, world!'
    assert paragraph.attrib == {'style': 'color: green'}


@assert_no_logs
def test_linked_stylesheets():
    document = Document('''
      <html>
        <head>
          <title>Greetings</title>
          <link rel="stylesheet" href="/sample.css" type="text/css">
        </head>
        <body>
          <p>Hello, world!</p>
        </body>
      </html>
    ''', asset_providers=[MemoryProvider({
        '/sample.css': 'p { color: red; text-align: right; }'})])
    document.add_css('p { color: green; text-size: 2em; }')
    result = transform(document)
    assert styling(result.find('.//p')) == [
        ('color', 'red'), ('text-align', 'right'),
        ('color', 'green'), ('text-size', '2em')]
    assert result.find('.//link') is None


@assert_no_logs
def test_stylesheets_tree_order():
    document = Document('''
      <style>p { color: red }</style>
      <link rel="stylesheet" href="a.css">
      <p>Hello</p>
      <style>p { color: blue }</style>
    ''', asset_providers=[MemoryProvider({'a.css': 'p { color: green }'})])
    result = transform(document)
    assert styling(result.find('.//p')) == [
        ('color', 'red'), ('color', 'green'), ('color', 'blue')]
    assert result.find('.//style') is None


@assert_no_logs
def test_filesystem_stylesheets():
    html = resource_path('mail.html').read_text(encoding='utf-8')
    document = Document(
        html, asset_providers=[FilesystemProvider(resource_path(''))])
    result = transform(document)
    assert styling(result.find('.//h1')) == [
        ('color', 'navy'), ('margin', '0'), ('color', 'black')]
    assert styling(result.find('.//p')) == [('font-weight', 'bold')]
    assert styling(result.find('.//footer')) == [
        ('font-size', '12px'), ('color', 'gray')]


@assert_no_logs
@pytest.mark.parametrize('html', (
    '<style type="text/less">p { color: red }</style><p></p>',
    '<style data-cascader-ignore>p { color: red }</style><p></p>',
    '<link rel="alternate stylesheet" href="a.css"><p></p>',
    '<link rel="icon" href="a.css"><p></p>',
    '<link rel="stylesheet" href="a.css" type="text/plain"><p></p>',
    '<link rel="stylesheet" href="a.css" data-cascader-ignore><p></p>',
))
def test_ignored_elements(html):
    document = Document(
        html, asset_providers=[MemoryProvider({'a.css': 'p { color: red }'})])
    result = transform(document)
    assert result.find('.//p').get('style') is None
    assert len(list(result.iter('style'))) + len(list(result.iter('link'))) == 1


@assert_no_logs
@pytest.mark.parametrize('type', (
    'text/css', 'TEXT/CSS', 'text/css; charset=utf-8'))
def test_style_type(type):
    document = Document(f'<style type="{type}">p {{ color: red }}</style><p>')
    result = transform(document)
    assert styling(result.find('.//p')) == [('color', 'red')]


@assert_no_logs
def test_keep_style_elements():
    document = Document(
        '<style>p { color: red }</style><link rel=stylesheet href=a.css><p>',
        asset_providers=[MemoryProvider({'a.css': 'p { color: green }'})])
    result = transform(document, keep_style_elements=True)
    assert result.find('.//style').text == 'p { color: red }'
    assert result.find('.//link').get('href') == 'a.css'
    assert styling(result.find('.//p')) == [('color', 'red'), ('color', 'green')]


def test_missing_stylesheet():
    document = Document(
        '<link rel="stylesheet" href="missing.css"><p>',
        asset_providers=[MemoryProvider()])
    with capture_logs() as logs:
        result = transform(document)
    assert logs == ['ERROR: Failed to load stylesheet at missing.css']
    assert result.find('.//link').get('href') == 'missing.css'


def test_external_stylesheet_not_fetched():
    document = Document(
        '<link rel="stylesheet" href="https://example.com/mail.css"><p>')
    with capture_logs() as logs:
        result = transform(document)
    assert logs == [
        'ERROR: Failed to load stylesheet at https://example.com/mail.css']
    assert result.find('.//p').get('style') is None


@assert_no_logs
@pytest.mark.parametrize('href', (
    'https://example.com/mail.css', '//example.com/mail.css'))
def test_external_stylesheet(href):
    def fetcher(url):
        assert url == 'https://example.com/mail.css'
        return URLFetcherResource(
            url, string=b'p { color: green }', mime_type='text/css')

    document = Document(
        f'<link rel="stylesheet" href="{href}"><p>',
        asset_providers=[MemoryProvider({href: 'p { color: red }'})],
        external_asset_providers=[URLProvider(fetcher)])
    result = transform(document)
    assert styling(result.find('.//p')) == [('color', 'green')]


def test_diagnostics():
    document = Document('<p style="color">Hello</p>')
    document.add_css('p:unknown { color: red } p { margin: 0 }', name='mail')
    with capture_logs() as logs:
        transform(document, strict=True)
    unsupported, malformed = document.diagnostics
    assert unsupported == UnsupportedSelector('p:unknown', 'mail')
    assert isinstance(malformed, MalformedInlineStyle)
    assert len(logs) == 2
    with capture_logs() as logs:
        result = transform(document)
    assert document.diagnostics == [unsupported]
    assert styling(result.find('.//p')) == [('margin', '0')]
    assert len(logs) == 2


@assert_no_logs
def test_base_url():
    document = Document(
        '<a href="/unsubscribe">x</a><a href="#top">y</a><img src="logo.png">',
        base_url='https://example.com/mail/')
    result = transform(document)
    assert [a.get('href') for a in result.iter('a')] == [
        'https://example.com/unsubscribe', '#top']
    assert result.find('.//img').get('src') == (
        'https://example.com/mail/logo.png')


@assert_no_logs
def test_relative_urls_kept():
    document = Document('<a href="/unsubscribe">x</a>')
    result = transform(document)
    assert result.find('.//a').get('href') == '/unsubscribe'


@assert_no_logs
def test_normalize():
    html = Document('<p>Hello</p>').transform()
    assert html.startswith('<!DOCTYPE html>\n<html><head><meta ')
    assert 'charset=UTF-8' in html
    assert html.endswith('<body><p>Hello</p></body></html>')


@assert_no_logs
def test_normalize_keeps_doctype():
    doctype = (
        '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Transitional//EN" '
        '"http://www.w3.org/TR/xhtml1/DTD/xhtml1-transitional.dtd">')
    html = Document(f'{doctype}<p>Hello</p>').transform()
    assert html.startswith(f'{doctype}\n<html>')
    assert html.count('DOCTYPE') == 1


@assert_no_logs
def test_no_normalize():
    html = Document('<p>Hello</p>').transform(normalize=False)
    assert html == '<html><head></head><body><p>Hello</p></body></html>'
    html = Document('<!doctype html><p>Hello</p>').transform(normalize=False)
    assert html.startswith('<!doctype html>\n')


def test_unknown_option():
    with capture_logs() as logs:
        Document(SAMPLE_HTML).transform(unknown=True)
    assert logs == ['WARNING: Unknown transformation option: unknown.']


@assert_no_logs
def test_removed_element_tail():
    document = Document(
        '<body>Before<style>p { color: red }</style>After<p>Text</p></body>')
    result = transform(document, normalize=False)
    assert result.find('body').text == 'BeforeAfter'


@assert_no_logs
def test_added_stylesheet_object():
    document = Document('<p class="x">Hello</p>')
    document.add_css(Stylesheet('empty'))
    document.add_css(CSS(string='.x { color: green }'))
    result = transform(document)
    assert styling(result.find('.//p')) == [('color', 'green')]


@assert_no_logs
@pytest.mark.parametrize('media, inlined', (
    ('', True),
    ('all', True),
    ('screen', True),
    ('SCREEN', True),
    ('only screen', True),
    ('print, screen', True),
    ('print', False),
    ('speech', False),
    ('only print', False),
    ('screen and (max-width: 600px)', False),
))
def test_media_attribute(media, inlined):
    document = Document(
        f'<style media="{media}">p {{ color: red }}</style>'
        f'<link rel="stylesheet" href="a.css" media="{media}"><p>Hello</p>',
        asset_providers=[MemoryProvider({'a.css': 'p { margin: 0 }'})])
    result = transform(document)
    if inlined:
        assert styling(result.find('.//p')) == [
            ('color', 'red'), ('margin', '0')]
        assert result.find('.//style') is None
        assert result.find('.//link') is None
    else:
        assert result.find('.//p').get('style') is None
        assert result.find('.//style').get('media') == media
        assert result.find('.//link').get('media') == media
