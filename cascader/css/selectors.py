"""Selector specificity and matching.

Selectors are compiled by cssselect2 and matched against ElementTree elements
wrapped in :class:`cssselect2.ElementWrapper`. Compiled selectors only depend
on the selector text: they are cached at the module level and shared between
documents.

A selector gets one of three statuses when it is matched:

- ``'supported'``: the selector has been evaluated, its match set may be
  empty;
- ``'unsupported'``: cssselect2 can't evaluate the selector, the caller has to
  report it and skip the rule;
- ``'ignored'``: at-rule content that the stylesheet parser should never have
  let through.

"""

from collections import namedtuple

import cssselect2
import tinycss2

from ..logger import LOGGER

SUPPORTED = 'supported'
UNSUPPORTED = 'unsupported'
IGNORED = 'ignored'

# Pseudo-classes depending on user interaction or browsing history. Inlining
# is done once, without interaction: they never match.
DYNAMIC_PSEUDO_CLASSES = {
    'hover', 'focus', 'active', 'link', 'visited', 'target', 'any-link',
    'local-link', 'focus-within', 'focus-visible', 'target-within'}

#: Precedence of a declaration. ``important`` declarations outrank all others,
#: then selectors with more IDs, more classes, more types win.
Specificity = namedtuple('Specificity', 'important, ids, classes, types')

#: Result of :func:`match_selector`.
Match = namedtuple('Match', 'elements, status')

# keys: selector strings, values: cssselect2 compiled selectors
_COMPILED_SELECTORS = {}


def compile_selector(selector):
    """Compile a single selector, without commas.

    :raises: :class:`cssselect2.SelectorError` for invalid, unsupported or
        grouped selectors.

    """
    compiled = _COMPILED_SELECTORS.get(selector)
    if compiled is None:
        compiled_list = cssselect2.compile_selector_list(selector)
        if len(compiled_list) != 1:
            raise cssselect2.SelectorError(
                f'Expected exactly one selector, got {len(compiled_list)}')
        compiled, = compiled_list
        _COMPILED_SELECTORS[selector] = compiled
    return compiled


def compute_specificity(selector):
    """Return the :class:`Specificity` of a single selector.

    The ``important`` field is always ``False``: importance belongs to
    declarations, not to selectors.

    """
    ids, classes, types = compile_selector(selector).specificity
    return Specificity(False, ids, classes, types)


def has_dynamic_pseudo_class(selector):
    """Return whether a dynamic pseudo-class appears anywhere in ``selector``."""
    return _has_dynamic_pseudo_class(
        tinycss2.parse_component_value_list(selector))


def _has_dynamic_pseudo_class(tokens):
    previous = None
    for token in tokens:
        if token.type == 'ident' and previous == ':':
            if token.lower_value in DYNAMIC_PSEUDO_CLASSES:
                return True
        elif token.type == 'function':
            if _has_dynamic_pseudo_class(token.arguments):
                return True
        previous = token
    return False


def wrap_tree(root):
    """Return a :class:`cssselect2.ElementWrapper` for ``root``.

    ``root`` is an ElementTree element or tree, or an already wrapped element.

    """
    if root is None:
        raise TypeError('An element tree is required, got None')
    if isinstance(root, cssselect2.ElementWrapper):
        return root
    return cssselect2.ElementWrapper.from_html_root(root)


def match_selector(selector, root, elements=None):
    """Find the elements of ``root`` matched by ``selector``.

    Return a :class:`Match` with the list of matched ElementTree elements in
    tree order, and the status of the selector.

    ``elements`` is an optional list of the wrapped elements of the tree, so
    that the tree is not wrapped again for each selector of a stylesheet.

    """
    if selector.startswith('@'):
        LOGGER.debug('At-rule content reached the matcher: %r', selector)
        return Match([], IGNORED)

    try:
        compiled = compile_selector(selector)
    except cssselect2.SelectorError as exception:
        LOGGER.debug('Invalid or unsupported selector %r: %s', selector, exception)
        return Match([], UNSUPPORTED)

    if (compiled.never_matches or compiled.pseudo_element is not None or
            has_dynamic_pseudo_class(selector)):
        # Styles of pseudo-elements and interactive states can't be written
        # in the style attribute of the element.
        return Match([], SUPPORTED)

    if elements is None:
        elements = wrap_tree(root).iter_subtree()
    return Match(
        [element.etree_element for element in elements if compiled.test(element)],
        SUPPORTED)
