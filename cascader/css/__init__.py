"""Parse CSS into rules and declarations, and serialize them back.

Stylesheets are parsed by tinycss2 into a flat list of :class:`Rule` objects,
one per selector. Everything inlining can't express is dropped here, before
any selector reaches the matcher:

- at-rules (``@media``, ``@keyframes``, ``@font-face``…) and their content,
- rules without declarations,
- declarations with syntax errors, following CSS error recovery.

The same declaration parser is used for ``style`` attributes, and
:func:`serialize_declarations` is its inverse.

"""

from collections import namedtuple

import tinycss2
import tinycss2.ast

from ..logger import LOGGER

#: A single ``name: value`` pair, with the ``!important`` flag.
Declaration = namedtuple('Declaration', 'name, value, important')

#: A single selector with its declarations, in source order. ``index`` is the
#: parse order of the rule in its stylesheet, used to break specificity ties.
Rule = namedtuple('Rule', 'selector, declarations, stylesheet_name, index')


class Stylesheet:
    """Ordered rules parsed from one named CSS source."""
    def __init__(self, name, rules=()):
        #: Name of the source, used in diagnostics.
        self.name = name
        #: List of :class:`Rule` in parse order.
        self.rules = list(rules)

    def __repr__(self):
        return f'<{type(self).__name__} {self.name!r}, {len(self.rules)} rules>'

    def __iter__(self):
        return iter(self.rules)

    def __len__(self):
        return len(self.rules)


def parse_stylesheet(source, name='inline'):
    """Return a :class:`Stylesheet` from a CSS string or tinycss2 rules."""
    if isinstance(source, str):
        source = tinycss2.parse_stylesheet(
            source, skip_comments=True, skip_whitespace=True)
    return Stylesheet(name, preprocess_stylesheet(source, name))


def preprocess_stylesheet(stylesheet_rules, name):
    """Yield a :class:`Rule` for each selector of each qualified rule."""
    index = 0
    for rule in stylesheet_rules:
        if rule.type == 'error':
            LOGGER.warning(
                'Parse error at %d:%d: %s',
                rule.source_line, rule.source_column, rule.message)
            continue
        elif rule.type == 'at-rule':
            # Inline styles can't express conditional or global rules.
            LOGGER.debug(
                'Ignored @%s rule at %d:%d in %r',
                rule.lower_at_keyword, rule.source_line, rule.source_column,
                name)
            continue
        elif rule.type != 'qualified-rule':
            continue

        declarations, errors = parse_declarations(rule.content)
        for error in errors:
            LOGGER.warning(
                'Error: %s at %d:%d.',
                error.message, error.source_line, error.source_column)
        if not declarations:
            continue
        for selector in split_selectors(rule.prelude):
            yield Rule(selector, declarations, name, index)
            index += 1


def split_selectors(prelude):
    """Split a selector list on its top-level commas.

    Commas nested in functions (``:is(a, b)``) or blocks are kept in their
    group. Empty groups are kept as empty strings: they are invalid and must be
    reported, not silently dropped.

    """
    groups = [[]]
    for token in prelude:
        if token == ',':
            groups.append([])
        else:
            groups[-1].append(token)
    return [tinycss2.serialize(group).strip() for group in groups]


def parse_declarations(input):
    """Parse the content of a block, or a ``style`` attribute.

    Return a ``(declarations, errors)`` tuple, where ``declarations`` is a
    tuple of :class:`Declaration` in source order and ``errors`` a list of
    :class:`tinycss2.ast.ParseError`. Nested rules are errors here.

    """
    if input is None:
        return (), []
    declarations, errors = [], []
    for item in tinycss2.parse_blocks_contents(
            input, skip_comments=True, skip_whitespace=True):
        if item.type == 'declaration':
            value = tinycss2.serialize(item.value).strip()
            if value:
                declarations.append(
                    Declaration(item.name, value, item.important))
            else:
                errors.append(tinycss2.ast.ParseError(
                    item.source_line, item.source_column, 'invalid',
                    f'empty value for {item.name!r}'))
        elif item.type == 'error':
            errors.append(item)
        else:
            errors.append(tinycss2.ast.ParseError(
                item.source_line, item.source_column, 'invalid',
                f'unexpected {item.type} in declaration list'))
    return tuple(declarations), errors


def parse_style_attribute(style):
    """Parse the text of a ``style`` attribute.

    Return a ``(declarations, errors)`` tuple, see :func:`parse_declarations`.

    """
    return parse_declarations(style or '')


def serialize_declarations(declarations):
    """Render declarations as the text of a ``style`` attribute."""
    return '; '.join(
        f'{declaration.name}: {declaration.value}' +
        (' !important' if declaration.important else '')
        for declaration in declarations)
