"""Command-line interface to Cascader."""

import argparse
import sys
from pathlib import Path

from . import CSS, DEFAULT_OPTIONS, __version__
from .document import Document
from .logger import configure_logging
from .providers import FilesystemProvider, URLProvider
from .urls import URLFetcher


class Parser(argparse.ArgumentParser):
    def __init__(self, *args, **kwargs):
        self._arguments = {}
        super().__init__(*args, **kwargs)

    def add_argument(self, *args, **kwargs):
        super().add_argument(*args, **kwargs)
        key = args[-1].lstrip('-')
        kwargs['flags'] = args
        kwargs['positional'] = args[-1][0] != '-'
        self._arguments[key] = kwargs

    @property
    def docstring(self):
        self._arguments['help'] = self._arguments.pop('help')
        data = []
        for key, args in self._arguments.items():
            data.append('.. option:: ')
            action = args.get('action', 'store')
            for flag in args['flags']:
                data.append(flag)
                if not args['positional'] and action in ('store', 'append'):
                    data.append(f' <{key}>')
                data.append(', ')
            data[-1] = '\n\n'
            data.append(f'  {args["help"][0].upper()}{args["help"][1:]}.\n\n')
            if action == 'append':
                data.append('  This option can be passed multiple times.\n\n')
        return ''.join(data)


PARSER = Parser(
    prog='cascader', description='Inline CSS in HTML documents for emails.')
PARSER.add_argument(
    'input', help='filename of the HTML input, or - for stdin')
PARSER.add_argument(
    'output', help='filename where output is written, or - for stdout')
PARSER.add_argument(
    '-e', '--encoding', default='utf-8',
    help='character encoding of the input, defaults to utf-8')
PARSER.add_argument(
    '-s', '--stylesheet', action='append', dest='stylesheets',
    help='URL or filename of a stylesheet inlined after the document’s ones')
PARSER.add_argument(
    '-u', '--base-url',
    help='base used to make relative URLs of links and images absolute')
PARSER.add_argument(
    '--strict', action='store_true',
    help='leave malformed style attributes untouched and report them')
PARSER.add_argument(
    '-k', '--keep-style-elements', action='store_true',
    help='keep style and link elements once inlined')
PARSER.add_argument(
    '--no-normalize', action='store_false', dest='normalize',
    help='do not add missing doctype, structure elements and charset')
PARSER.add_argument(
    '-x', '--external', action='store_true',
    help='fetch stylesheets linked with absolute URLs')
PARSER.add_argument(
    '-t', '--timeout', type=int,
    help='set timeout in seconds for HTTP requests')
PARSER.add_argument(
    '--allowed-protocols', dest='allowed_protocols',
    help='only authorize comma-separated list of protocols for fetching URLs')
PARSER.add_argument(
    '-v', '--verbose', action='store_true',
    help='show warnings and information messages')
PARSER.add_argument(
    '-d', '--debug', action='store_true', help='show debugging messages')
PARSER.add_argument(
    '-q', '--quiet', action='store_true', help='hide logging messages')
PARSER.add_argument(
    '--version', action='version',
    version=f'Cascader version {__version__}',
    help='print Cascader’s version number and exit')
PARSER.set_defaults(**DEFAULT_OPTIONS)


def main(argv=None, stdout=None, stdin=None):
    """The ``cascader`` program takes at least two arguments:

    .. code-block:: sh

        cascader [options] <input> <output>

    """
    args = PARSER.parse_args(argv)

    if args.input == '-':
        source = (stdin or sys.stdin.buffer).read().decode(args.encoding)
        directory = Path.cwd()
    else:
        source = Path(args.input).read_text(encoding=args.encoding)
        directory = Path(args.input).resolve().parent

    if args.output == '-':
        output = stdout or sys.stdout.buffer
    else:
        output = args.output

    fetcher_options = {}
    if args.timeout is not None:
        fetcher_options['timeout'] = args.timeout
    if args.allowed_protocols is not None:
        fetcher_options['allowed_protocols'] = {
            protocol.strip().lower() for protocol in args.allowed_protocols.split(',')}
    url_fetcher = URLFetcher(**fetcher_options)

    options = {
        key: value for key, value in vars(args).items() if key in DEFAULT_OPTIONS}

    configure_logging(args.verbose, args.debug, args.quiet)

    document = Document(
        source, asset_providers=[FilesystemProvider(directory)],
        external_asset_providers=(
            [URLProvider(url_fetcher)] if args.external else None),
        base_url=args.base_url)
    for stylesheet in args.stylesheets or ():
        document.add_css(CSS(stylesheet, url_fetcher=url_fetcher))
    html = document.transform(**options)

    if hasattr(output, 'write'):
        output.write(html.encode('utf-8'))
    else:
        Path(output).write_text(html, encoding='utf-8')


main.__doc__ += '\n\n' + PARSER.docstring


if __name__ == '__main__':  # pragma: no cover
    main()
