#region PROLOGUE --------------------------------------------------------------
from __future__ import annotations

# python imports:
from abc import abstractmethod
import enum
import hashlib
import logging
import re
from typing import (
	Dict, Iterator, List, NamedTuple, Optional as Opt, Sequence as Seq, Tuple,
	Union,
)

import packaging.version # pip install packaging

# dict_proto imports:
from base_proto import (
	BaseResponse, ResponseType, RequestT, Event, NeedDataEvent, Closed,
	ProtocolError, RequestProtocolGenerator, ClientProtocol, ClientUtil,
)
from util import BYTES, chomp

__version__ = packaging.version.parse ( '0.1.0' )

logger = logging.getLogger ( __name__ )

DEFAULT_PORT = 2628 # RFC2229#3
DATABASE_ALL = '*' # search every database
DATABASE_FIRST = '!' # search every database until one of them has a match
DEFAULT_DATABASE = DATABASE_ALL
DEFAULT_STRATEGY = '.' # the server's preferred spell-checking strategy
ENCODING = 'utf-8' # RFC2229#2.2

_r_eol = re.compile ( r'[\r\n]' )
_r_code = re.compile ( r'^(\d{3})' )
_r_status = re.compile ( r'^(\d{3})\s(.*)$' )
_r_words = re.compile ( r'''"([^"\\]*(?:\\.[^"\\]*)*)"|'([^'\\]*(?:\\.[^'\\]*)*)'|(\S+)''' )

# RFC2229#3.1 capabilities and msg-id are built out of these
_MSG_ATOM = r'[^ \x00-\x1f\x7f<>.\\]+'
_MSG_ATOMS = rf'{_MSG_ATOM}(?:\.{_MSG_ATOM})*'
_r_greeting = re.compile ( rf'^220\s.*?(?:<({_MSG_ATOMS})>\s)?(<{_MSG_ATOMS}@{_MSG_ATOMS}>)$' )

#endregion
#region WORDS -----------------------------------------------------------------

def split_words ( line: str ) -> List[str]:
	'''
	Split a line of server text into words. A word is a double-quoted span,
	a single-quoted span or a run of non-whitespace. Quotes are removed but
	backslash escapes inside them are kept as-is.
	'''
	return [
		next ( word for word in m.groups() if word is not None )
		for m in _r_words.finditer ( line )
	]


def quote ( word: str ) -> str:
	escaped = word.replace ( '\\', '\\\\' ).replace ( '"', '\\"' )
	return f'"{escaped}"'


def format_command ( command: str, *args: str ) -> str:
	line = ' '.join ( ( command, *args ) )
	assert not _r_eol.search ( line ), f'invalid {line=}'
	return f'{line}\r\n'


def auth_hash ( msgid: str, secret: str ) -> str:
	return hashlib.md5 ( f'{msgid}{secret}'.encode ( ENCODING ) ).hexdigest()

#endregion
#region ERRORS ----------------------------------------------------------------

class ErrorKind ( enum.Enum ):
	MALFORMED_REPLY = 'malformed reply' # well-formed status line, but not the one we expected
	UNPARSABLE_REPLY = 'unparsable reply' # no recognizable status code
	RETRIABLE = 'retriable' # temporary condition, try again later
	SYNTAX = 'syntax' # unknown command or bad parameters
	AUTH = 'auth' # access denied
	SYSTEM = 'system' # missing database, unsupported strategy, etc.
	NO_MATCH = 'no match'
	NO_DATABASES = 'no databases'
	NO_STRATEGIES = 'no strategies'
	
	@property
	def general ( self ) -> ErrorKind:
		return _general_kinds.get ( self, self )

_general_kinds: Dict[ErrorKind,ErrorKind] = {
	ErrorKind.NO_MATCH: ErrorKind.SYSTEM,
	ErrorKind.NO_DATABASES: ErrorKind.SYSTEM,
	ErrorKind.NO_STRATEGIES: ErrorKind.SYSTEM,
}

# checked first so the specific system errors win over the generic 55x bucket
_xyz_errors: Dict[str,ErrorKind] = {
	'552': ErrorKind.NO_MATCH,
	'554': ErrorKind.NO_DATABASES,
	'555': ErrorKind.NO_STRATEGIES,
}

_xy_errors: Dict[str,ErrorKind] = {
	'42': ErrorKind.RETRIABLE,
	'50': ErrorKind.SYNTAX,
	'53': ErrorKind.AUTH,
	'55': ErrorKind.SYSTEM,
}


def classify ( code: str ) -> Opt[ErrorKind]:
	''' map a 3-digit status code to an ErrorKind, None means it isn't an error '''
	assert len ( code ) == 3 and code.isdigit(), f'invalid {code=}'
	if code[0] not in '45':
		return None
	kind = _xyz_errors.get ( code ) or _xy_errors.get ( code[:2] )
	return kind or ErrorKind.UNPARSABLE_REPLY


class ErrorResponse ( BaseResponse ):
	def __init__ ( self, kind: ErrorKind, line: str ) -> None:
		self.kind = kind
		self.line = line
		m = _r_code.match ( line )
		self.code: Opt[int] = int ( m.group ( 1 ) ) if m else None
		super().__init__ ( line )
	
	def is_success ( self ) -> bool:
		return False
	
	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}(ErrorKind.{self.kind.name}, {self.line!r})'

#endregion
#region RESPONSES -------------------------------------------------------------

class MetaData ( NamedTuple ):
	name: str
	description: str
	
	def __str__ ( self ) -> str:
		return f'{self.name}: {self.description}'


class Definition ( NamedTuple ):
	word: str
	database: str
	description: str # of the database, not the word
	lines: Tuple[str,...]
	
	@property
	def text ( self ) -> str:
		return '\n'.join ( self.lines )
	
	def __str__ ( self ) -> str:
		body = ''.join ( f'  {line}\n' for line in self.lines )
		return f'From {self.description} [{self.database}]:\n\n{body}\n'


class Response ( BaseResponse ):
	def __init__ ( self, code: int, message: str ) -> None:
		self.code = code
		self.message = message
		super().__init__()
	
	@staticmethod
	def parse ( line: BYTES ) -> Union[SuccessResponse,ErrorResponse]:
		try:
			text = chomp ( line, ENCODING )
		except UnicodeDecodeError:
			return ErrorResponse ( ErrorKind.UNPARSABLE_REPLY, chomp ( line, ENCODING, 'replace' ) )
		m = _r_status.match ( text )
		if not m:
			return ErrorResponse ( ErrorKind.UNPARSABLE_REPLY, text )
		code, message = m.groups()
		kind = classify ( code )
		if kind is not None:
			return ErrorResponse ( kind, text )
		return SuccessResponse ( int ( code ), message )
	
	@staticmethod
	def check ( line: BYTES, code: int ) -> Union[SuccessResponse,ErrorResponse]:
		try:
			text = chomp ( line, ENCODING )
		except UnicodeDecodeError:
			return ErrorResponse ( ErrorKind.UNPARSABLE_REPLY, chomp ( line, ENCODING, 'replace' ) )
		m = _r_code.match ( text )
		if not m:
			return ErrorResponse ( ErrorKind.UNPARSABLE_REPLY, text )
		kind = classify ( m.group ( 1 ) )
		if kind is not None and kind is not ErrorKind.UNPARSABLE_REPLY:
			return ErrorResponse ( kind, text )
		if int ( m.group ( 1 ) ) != code:
			return ErrorResponse ( ErrorKind.MALFORMED_REPLY, text )
		return SuccessResponse ( code, text[4:] )
	
	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}({self.code!r}, {self.message!r})'


class SuccessResponse ( Response ):
	def is_success ( self ) -> bool:
		return True


class GreetingResponse ( SuccessResponse ):
	def __init__ ( self, code: int, message: str, capabilities: Tuple[str,...], msgid: str ) -> None:
		self.capabilities = capabilities
		self.msgid = msgid
		super().__init__ ( code, message )


class StatusResponse ( SuccessResponse ):
	@property
	def result ( self ) -> str:
		return self.message


class MetaDataResponse ( SuccessResponse ):
	def __init__ ( self, code: int, message: str, metadata: List[MetaData] ) -> None:
		self.metadata = metadata
		super().__init__ ( code, message )
	
	@property
	def result ( self ) -> List[MetaData]:
		return self.metadata


class TextResponse ( SuccessResponse ):
	def __init__ ( self, code: int, message: str, text: str ) -> None:
		self.text = text
		super().__init__ ( code, message )
	
	@property
	def result ( self ) -> str:
		return self.text


class MatchResponse ( SuccessResponse ):
	def __init__ ( self, code: int, message: str, matches: Dict[str,List[str]] ) -> None:
		self.matches = matches
		super().__init__ ( code, message )
	
	@property
	def result ( self ) -> Dict[str,List[str]]:
		return self.matches


class DefineResponse ( SuccessResponse ):
	def __init__ ( self, code: int, message: str, definitions: List[Definition] ) -> None:
		self.definitions = definitions
		super().__init__ ( code, message )
	
	@property
	def result ( self ) -> List[Definition]:
		return self.definitions


class DictUtil ( ClientUtil ):
	def recv_checked ( self, code: int, event: Opt[NeedDataEvent] = None ) -> Iterator[Event]:
		if event is None:
			event = NeedDataEvent()
		yield from event.reset().go()
		event.response = response = Response.check ( event.data or b'', code )
		if not response.is_success():
			raise response
	
	def recv_done ( self, code: int ) -> Iterator[Event]:
		event = NeedDataEvent()
		yield from self.recv_checked ( code, event )
		assert event.response is not None
		raise event.response
	
	def send_recv_checked ( self, line: str, code: int, event: Opt[NeedDataEvent] = None ) -> Iterator[Event]:
		yield from self.send ( line )
		yield from self.recv_checked ( code, event )
	
	def send_recv_done ( self, line: str, code: int ) -> Iterator[Event]:
		yield from self.send ( line )
		yield from self.recv_done ( code )
	
	def recv_body ( self, lines: List[str], ack: Opt[int] = 250 ) -> Iterator[Event]:
		'''
		Collect a dot-terminated text body into `lines`, undoing dot-stuffing.
		If `ack` is given, the status line following the body is checked too.
		'''
		event = NeedDataEvent()
		while True:
			yield from event.go()
			line = chomp ( event.data or b'', ENCODING, 'replace' ) # older databases aren't always UTF-8
			if line == '.':
				break
			lines.append ( line[1:] if line.startswith ( '.' ) else line )
		if ack is not None:
			yield from self.recv_checked ( ack )


dict_util = DictUtil ( Response.parse, ENCODING )


def _group ( lines: Seq[str] ) -> Dict[str,List[str]]:
	# key -> first value of every line with that key, in first-seen order
	groups: Dict[str,List[str]] = {}
	for line in lines:
		words = split_words ( line )
		if len ( words ) < 2:
			raise ErrorResponse ( ErrorKind.MALFORMED_REPLY, line )
		groups.setdefault ( words[0], [] ).append ( words[1] )
	return groups

#endregion
#region REQUESTS --------------------------------------------------------------

class Request ( RequestT[ResponseType] ):
	def _client_protocol ( self, client: ClientProtocol ) -> RequestProtocolGenerator:
		assert isinstance ( client, Client )
		yield from self.client_protocol ( client )
	
	@abstractmethod
	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		cls = self.__class__
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.client_protocol()' )


class GreetingRequest ( Request[GreetingResponse] ):
	responsecls = GreetingResponse
	
	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		#log = logger.getChild ( 'GreetingRequest.client_protocol' )
		event = NeedDataEvent()
		yield from dict_util.recv_ok ( event )
		assert isinstance ( event.response, Response )
		line = f'{event.response.code} {event.response.message}'
		m = _r_greeting.match ( line )
		if not m:
			raise ErrorResponse ( ErrorKind.MALFORMED_REPLY, line )
		capabilities, msgid = m.groups()
		client.capabilities = tuple ( capabilities.split ( '.' ) ) if capabilities else ()
		client.msgid = msgid
		raise GreetingResponse ( event.response.code, event.response.message, client.capabilities, msgid )


class AuthRequest ( Request[SuccessResponse] ):
	responsecls = SuccessResponse
	
	def __init__ ( self, user: str, secret: str, msgid: Opt[str] ) -> None:
		if not msgid:
			raise ProtocolError ( 'cannot authenticate before the server greeting supplied a msg-id' )
		assert user and not _r_eol.search ( user ) and ' ' not in user, f'invalid {user=}'
		self.user = user
		self.digest = auth_hash ( msgid, secret )
	
	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		yield from dict_util.send_recv_done ( format_command ( 'AUTH', self.user, self.digest ), 230 )
	
	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}(user={self.user!r})'


class ClientRequest ( Request[SuccessResponse] ):
	responsecls = SuccessResponse
	
	def __init__ ( self, client_id: str ) -> None:
		self.client_id = client_id
	
	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		yield from dict_util.send_recv_done ( format_command ( 'CLIENT', quote ( self.client_id ) ), 250 )


class StatusRequest ( Request[StatusResponse] ):
	responsecls = StatusResponse
	
	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		event = NeedDataEvent()
		yield from dict_util.send_recv_ok ( format_command ( 'STATUS' ), event )
		assert isinstance ( event.response, Response )
		raise StatusResponse ( event.response.code, event.response.message )


class _MetaDataRequest ( Request[MetaDataResponse] ):
	responsecls = MetaDataResponse
	_command: str
	_code: int
	
	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		event = NeedDataEvent()
		yield from dict_util.send_recv_checked ( format_command ( self._command ), self._code, event )
		assert isinstance ( event.response, Response )
		lines: List[str] = []
		yield from dict_util.recv_body ( lines )
		metadata = [
			MetaData ( name, values[0] )
			for name, values in _group ( lines ).items()
		]
		raise MetaDataResponse ( event.response.code, event.response.message, metadata )


class ShowDatabasesRequest ( _MetaDataRequest ):
	_command = 'SHOW DATABASES'
	_code = 110


class ShowStrategiesRequest ( _MetaDataRequest ):
	_command = 'SHOW STRATEGIES'
	_code = 111


class _TextRequest ( Request[TextResponse] ):
	responsecls = TextResponse
	_code: int
	_line: str
	
	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		event = NeedDataEvent()
		yield from dict_util.send_recv_checked ( self._line, self._code, event )
		assert isinstance ( event.response, Response )
		lines: List[str] = []
		yield from dict_util.recv_body ( lines )
		raise TextResponse ( event.response.code, event.response.message, '\n'.join ( lines ) )


class ShowInfoRequest ( _TextRequest ):
	_code = 112
	
	def __init__ ( self, database: str ) -> None:
		self.database = database
		self._line = format_command ( 'SHOW INFO', database )


class HelpRequest ( _TextRequest ):
	_code = 113
	_line = 'HELP\r\n'


class ShowServerRequest ( _TextRequest ):
	_code = 114
	_line = 'SHOW SERVER\r\n'


class MatchRequest ( Request[MatchResponse] ):
	responsecls = MatchResponse
	
	def __init__ ( self, word: str, database: str = DEFAULT_DATABASE, strategy: str = DEFAULT_STRATEGY ) -> None:
		self.word = word
		self.database = database
		self.strategy = strategy
	
	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		event = NeedDataEvent()
		line = format_command ( 'MATCH', self.database, self.strategy, quote ( self.word ) )
		yield from dict_util.send_recv_checked ( line, 152, event )
		assert isinstance ( event.response, Response )
		lines: List[str] = []
		yield from dict_util.recv_body ( lines )
		raise MatchResponse ( event.response.code, event.response.message, _group ( lines ) )


class DefineRequest ( Request[DefineResponse] ):
	responsecls = DefineResponse
	
	def __init__ ( self, word: str, database: str = DEFAULT_DATABASE ) -> None:
		self.word = word
		self.database = database
	
	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		log = logger.getChild ( 'DefineRequest.client_protocol' )
		line = format_command ( 'DEFINE', self.database, quote ( self.word ) )
		yield from dict_util.send_recv_checked ( line, 150 )
		definitions: List[Definition] = []
		event = NeedDataEvent()
		while True:
			yield from dict_util.recv_ok ( event )
			response = event.response
			assert isinstance ( response, Response )
			if response.code == 250:
				break
			header = split_words ( response.message )
			if len ( header ) != 3:
				raise ErrorResponse ( ErrorKind.MALFORMED_REPLY, f'{response.code} {response.message}' )
			word, database, description = header
			lines: List[str] = []
			yield from dict_util.recv_body ( lines, ack = None )
			log.debug ( f'{word=} {database=} has {len(lines)} line(s)' )
			definitions.append ( Definition ( word, database, description, tuple ( lines ) ) )
		raise DefineResponse ( response.code, response.message, definitions )


class QuitRequest ( Request[SuccessResponse] ):
	responsecls = SuccessResponse
	
	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		yield from dict_util.send_recv_done ( format_command ( 'QUIT' ), 221 )

#endregion
#region CLIENT ----------------------------------------------------------------

class Client ( ClientProtocol ):
	_MAXLINE = 8192 # RFC2229#2.2 limits lines to 1024 octets, be generous
	capabilities: Opt[Tuple[str,...]] = None
	msgid: Opt[str] = None
	
	@property
	def authentication ( self ) -> bool:
		return 'auth' in ( self.capabilities or () )

#endregion
