'''
dict:// locators as described by RFC2229 section 5:

	dict://[user:secret@]host[:port]/d:<word>[:<database>[:<n>]]
	dict://[user:secret@]host[:port]/m:<word>[:<database>[:<strategy>[:<n>]]]
'''
from __future__ import annotations

# python imports:
import logging
import re
import sys
from typing import Dict, List, NamedTuple, Optional as Opt, Tuple
from urllib.parse import unquote, urlsplit

# dict_proto imports:
import dict_proto as proto
import dict_socket

logger = logging.getLogger ( __name__ )

CLIENT_STRING = 'Python dict_proto DICT-protocol-module'

_r_define_path = re.compile ( r'^/d:([^:]+)(?::([^:]+)(?::(.+))?)?$' )
_r_match_path = re.compile ( r'^/m:([^:]+)(?::([^:]+)(?::([^:]+)(?::(.+))?)?)?$' )


class Locator ( NamedTuple ):
	method: str # 'define' or 'match'
	args: Tuple[str,...]
	n: Opt[int] = None


def parse_path ( path: str ) -> Locator:
	m = _r_define_path.match ( path )
	if m:
		method, args, n = 'define', m.group ( 1, 2 ), m.group ( 3 )
	else:
		m = _r_match_path.match ( path )
		if not m:
			raise ValueError ( f'unknown DICT path: {path!r}' )
		method, args, n = 'match', m.group ( 1, 2, 3 ), m.group ( 4 )
	index: Opt[int] = None
	if n is not None:
		index = int ( n )
		if index <= 0:
			raise ValueError ( f'<n> must be greater than zero: {path!r}' )
	return Locator ( method, tuple ( arg for arg in args if arg is not None ), index )


def render_definitions ( definitions: List[proto.Definition], n: Opt[int] = None ) -> str:
	if n is not None:
		return str ( definitions[n - 1] )
	return f'{len(definitions)} definitions found\n\n' + ''.join ( map ( str, definitions ) )


def render_matches ( matches: Dict[str,List[str]] ) -> str:
	# TODO: <n> selects nothing for match locators, pick the n-th word once a numbering is settled on
	longest = max ( map ( len, matches ), default = 0 )
	return ''.join (
		f'{database:>{longest}}     {", ".join(words)}\n'
		for database, words in matches.items()
	)


def fetch ( url: str ) -> str:
	log = logger.getChild ( 'fetch' )
	parts = urlsplit ( url )
	if parts.scheme != 'dict':
		raise ValueError ( f'not a dict:// url: {url!r}' )
	locator = parse_path ( unquote ( parts.path ) )
	log.debug ( f'{locator=}' )
	user = unquote ( parts.username ) if parts.username is not None else None
	secret = unquote ( parts.password ) if parts.password is not None else None
	if ( user is None ) != ( secret is None ):
		raise ValueError ( f'dict:// userinfo needs both a user and a secret: {url!r}' )
	with dict_socket.Client.session ( CLIENT_STRING,
		parts.hostname or 'localhost',
		parts.port or proto.DEFAULT_PORT,
		user,
		secret,
	) as ( cli, results ):
		getattr ( cli, locator.method ) ( *locator.args )
	result = results[0]
	if locator.method == 'define':
		return render_definitions ( result, locator.n )
	return render_matches ( result )


if __name__ == '__main__':
	logging.basicConfig ( stream = sys.stderr, level = logging.WARNING )
	print ( fetch ( sys.argv[1] if len ( sys.argv ) > 1 else 'dict://dict.org/d:exact' ), end = '' )
