"""Inline the rules of stylesheets in the ``style`` attribute of elements.

This is the core of Cascader: match the selectors of all stylesheets against
the document, sort the matched declarations in cascade order and write them,
followed by the declarations already present, in the ``style`` attribute of
each element.

Declarations are sorted from the lowest to the highest precedence and never
deduplicated: renderers apply the last declaration they understand for each
property, so that the highest precedence wins and the earlier ones are
fallbacks for limited renderers.

"""

from collections import namedtuple

from .css import parse_style_attribute, serialize_declarations
from .css.selectors import UNSUPPORTED, compute_specificity, match_selector, wrap_tree
from .logger import LOGGER

#: A rule matching an element, with the ``(sheet_index, rule.index)`` position
#: of the rule in the list of stylesheets.
MatchedRule = namedtuple('MatchedRule', 'rule, specificity, order')


class UnsupportedSelector(namedtuple(
        'UnsupportedSelector', 'selector, stylesheet_name')):
    """Diagnostic for a selector that can't be matched."""
    def __str__(self):
        return (
            f'Cannot use {self.selector!r} (from {self.stylesheet_name!r} '
            'stylesheet) when inlining stylesheets')


class MalformedInlineStyle(namedtuple(
        'MalformedInlineStyle', 'element, style, errors')):
    """Diagnostic for a ``style`` attribute that can't be parsed."""
    def __str__(self):
        messages = ', '.join(error.message for error in self.errors)
        return (
            f'Malformed style attribute {self.style!r} '
            f'on <{self.element.tag}>: {messages}')


def cascade(matched_rules):
    """Return the declarations of ``matched_rules`` in cascade order.

    Declarations are sorted by ascending importance and specificity, source
    order is kept for declarations with the same precedence.

    """
    weighted_declarations = []
    for rule, specificity, order in matched_rules:
        for index, declaration in enumerate(rule.declarations):
            weight = (
                specificity._replace(important=declaration.important),
                order, index)
            weighted_declarations.append((weight, declaration))
    weighted_declarations.sort(key=lambda item: item[0])
    return [declaration for _, declaration in weighted_declarations]


def resolve(element, matched_rules, strict=False):
    """Return the final list of declarations for ``element``.

    Cascaded declarations come first, the declarations already in the
    ``style`` attribute of the element come last, in their original order.

    Return a ``(declarations, diagnostic)`` tuple. ``diagnostic`` is ``None``,
    or a :class:`MalformedInlineStyle` when the ``style`` attribute has errors
    in ``strict`` mode. In this case, ``declarations`` is ``None`` and the
    element must be left untouched.

    """
    style = element.get('style')
    inline_declarations, errors = parse_style_attribute(style)
    if errors:
        if strict:
            return None, MalformedInlineStyle(element, style, errors)
        for error in errors:
            LOGGER.warning(
                'Error in style attribute of <%s>: %s at %d:%d.',
                element.tag, error.message, error.source_line,
                error.source_column)
    return [*cascade(matched_rules), *inline_declarations], None


def inline(root, stylesheets, strict=False):
    """Inline ``stylesheets`` in the element tree rooted at ``root``.

    The tree is modified in place. Only the ``style`` attributes of elements
    matched by at least one rule are changed.

    :param root:
        An ElementTree element or tree, or a :class:`cssselect2.ElementWrapper`.
    :param stylesheets:
        An iterable of :class:`cascader.css.Stylesheet` objects, in cascade
        order.
    :param bool strict:
        Whether malformed ``style`` attributes are reported as diagnostics and
        left untouched, instead of being fixed by CSS error recovery.
    :returns:
        A list of diagnostics, :class:`UnsupportedSelector` and
        :class:`MalformedInlineStyle` objects.

    """
    wrapper = wrap_tree(root)
    elements = list(wrapper.iter_subtree())
    diagnostics = []

    # keys: ElementTree elements, values: lists of MatchedRule
    matched_rules = {}
    for sheet_index, stylesheet in enumerate(stylesheets):
        for rule in stylesheet.rules:
            matched, status = match_selector(rule.selector, wrapper, elements)
            if status == UNSUPPORTED:
                diagnostic = UnsupportedSelector(rule.selector, stylesheet.name)
                LOGGER.warning('%s', diagnostic)
                diagnostics.append(diagnostic)
                continue
            if not matched:
                continue
            specificity = compute_specificity(rule.selector)
            order = (sheet_index, rule.index)
            for element in matched:
                matched_rules.setdefault(element, []).append(
                    MatchedRule(rule, specificity, order))

    # Elements are written in tree order, so that diagnostics are reported in
    # a stable order.
    for element in elements:
        element = element.etree_element
        if element not in matched_rules:
            continue
        declarations, diagnostic = resolve(
            element, matched_rules[element], strict)
        if diagnostic is not None:
            LOGGER.warning('%s', diagnostic)
            diagnostics.append(diagnostic)
        elif declarations:
            element.set('style', serialize_declarations(declarations))
    return diagnostics
