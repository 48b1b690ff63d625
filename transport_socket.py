from __future__ import annotations

# python imports:
import logging
import socket
from typing import Type

# dict_proto imports:
from transport import SyncTransport
from util import BYTES

logger = logging.getLogger ( __name__ )


class SocketTransport ( SyncTransport ):
	sock: socket.socket
	
	def __init__ ( self, sock: socket.socket ) -> None:
		self.sock = sock
		self.sock.settimeout ( self.timeout )
	
	@classmethod
	def connect ( cls: Type[SocketTransport], hostname: str, port: int ) -> SocketTransport:
		log = logger.getChild ( 'SocketTransport.connect' )
		
		for *params, _, address in socket.getaddrinfo ( hostname, port, type = socket.SOCK_STREAM ):
			sock = socket.socket ( *params )
			sock.settimeout ( cls.timeout )
			try:
				sock.connect ( address )
			except OSError as e:
				log.warning ( f'Error connecting to {address=}: {e!r}' )
				sock.close()
				continue
			else:
				return cls ( sock )
		raise ConnectionError ( f'Unable to connect to {hostname=} {port=}' )
	
	def read ( self ) -> bytes:
		#log = logger.getChild ( 'SocketTransport.read' )
		return self.sock.recv ( 4096 )
	
	def write ( self, data: BYTES ) -> None:
		#log = logger.getChild ( 'SocketTransport.write' )
		self.sock.sendall ( data )
	
	def close ( self ) -> None:
		#log = logger.getChild ( 'SocketTransport.close' )
		self.sock.close()
	
	def __repr__ ( self ) -> str:
		cls = type ( self )
		try:
			peer = self.sock.getpeername()
		except OSError:
			peer = None
		return f'{cls.__module__}.{cls.__name__}({peer=})'
