from __future__ import annotations

# python imports:
import contextlib
import logging
import socket
import threading
import trio # pip install trio
from typing import Iterator, List, Optional as Opt, Tuple

# dict_proto imports:
from util import b2s, s2b

logger = logging.getLogger ( __name__ )

GREETING = '220 dictd.example.org <auth.mime> <abc123.xyz@dictd.example.org>'


def _crlf ( text: str ) -> bytes:
	return s2b ( ''.join ( f'{line}\r\n' for line in text.split ( '\n' ) ) )


def _take_line ( buf: bytes ) -> Tuple[Opt[str],bytes]:
	line, sep, rest = buf.partition ( b'\r\n' )
	if not sep:
		return None, buf
	return b2s ( line ), rest


class ScriptedServer:
	'''
	A DICT server that doesn't know DICT. It sends `greeting`, then answers
	the n-th request line it receives with the n-th reply. Replies are plain
	text, one server line per '\\n'. Every request line is kept in `received`.
	'''
	def __init__ ( self, *replies: str, greeting: str = GREETING ) -> None:
		self.greeting = greeting
		self.replies = replies
		self.received: List[str] = []
	
	def serve_socket ( self, sock: socket.socket ) -> None:
		log = logger.getChild ( 'ScriptedServer.serve_socket' )
		try:
			sock.sendall ( _crlf ( self.greeting ) )
			buf = b''
			for reply in self.replies:
				line, buf = _take_line ( buf )
				while line is None:
					data = sock.recv ( 4096 )
					if not data:
						log.debug ( f'client hung up after {self.received=}' )
						return
					line, buf = _take_line ( buf + data )
				log.debug ( f'C>{line}' )
				self.received.append ( line )
				sock.sendall ( _crlf ( reply ) )
		finally:
			sock.close()
	
	async def serve_stream ( self, stream: trio.abc.Stream ) -> None:
		log = logger.getChild ( 'ScriptedServer.serve_stream' )
		async with stream:
			await stream.send_all ( _crlf ( self.greeting ) )
			buf = b''
			for reply in self.replies:
				line, buf = _take_line ( buf )
				while line is None:
					data = await stream.receive_some()
					if not data:
						log.debug ( f'client hung up after {self.received=}' )
						return
					line, buf = _take_line ( buf + data )
				log.debug ( f'C>{line}' )
				self.received.append ( line )
				await stream.send_all ( _crlf ( reply ) )


DEFINE_RUBY = '\n'.join ( [
	'150 1 definitions retrieved',
	'151 "ruby" "foldoc" "Free On-line Dictionary of Computing"',
	'a programming language',
	'.',
	'250 ok',
] )


@contextlib.contextmanager
def listening ( server: ScriptedServer ) -> Iterator[int]:
	''' serve a single connection on a loopback port, yields the port '''
	listener = socket.socket ( socket.AF_INET, socket.SOCK_STREAM )
	listener.bind ( ( '127.0.0.1', 0 ) )
	listener.listen ( 1 )
	def accept() -> None:
		conn, _ = listener.accept()
		server.serve_socket ( conn )
	thread = threading.Thread ( target = accept, daemon = True )
	thread.start()
	try:
		yield listener.getsockname()[1]
	finally:
		thread.join ( 5 )
		listener.close()
