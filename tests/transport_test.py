# python imports:
import logging
from pathlib import Path
import socket
import sys
import trio # pip install trio
import trio.testing
import unittest

if __name__ == '__main__': # pragma: no cover
	sys.path.append ( str ( Path ( __file__ ).parent.parent.absolute() ) )

# dict_proto imports:
import transport
from transport_socket import SocketTransport
from transport_trio import TrioTransport
from util import BYTES

logger = logging.getLogger ( __name__ )

class Tests ( unittest.TestCase ):
	def test_coverage ( self ) -> None:
		async def _test() -> None:
			class ST ( transport.SyncTransport ):
				def read ( self ) -> bytes:
					return super().read()
				def write ( self, data: BYTES ) -> None:
					super().write ( data )
				def close ( self ) -> None:
					super().close()
			st = ST()
			with self.assertRaises ( NotImplementedError ):
				st.read()
			with self.assertRaises ( NotImplementedError ):
				st.write ( b'foo' )
			with self.assertRaises ( NotImplementedError ):
				st.close()
			class AT ( transport.AsyncTransport ):
				async def read ( self ) -> bytes:
					return await super().read()
				async def write ( self, data: BYTES ) -> None:
					await super().write ( data )
				async def close ( self ) -> None:
					await super().close()
			at = AT()
			with self.assertRaises ( NotImplementedError ):
				await at.read()
			with self.assertRaises ( NotImplementedError ):
				await at.write ( b'foo' )
			with self.assertRaises ( NotImplementedError ):
				await at.close()
		trio.run ( _test )
	
	def test_socket ( self ) -> None:
		thing1, thing2 = socket.socketpair()
		xport = SocketTransport ( thing1 )
		self.assertEqual ( thing1.gettimeout(), transport.Transport.timeout )
		try:
			xport.write ( b'ping\r\n' )
			self.assertEqual ( thing2.recv ( 4096 ), b'ping\r\n' )
			thing2.sendall ( b'pong\r\n' )
			self.assertEqual ( xport.read(), b'pong\r\n' )
		finally:
			xport.close()
			thing2.close()
		self.assertEqual ( repr ( xport ), 'transport_socket.SocketTransport(peer=None)' )
	
	def test_socket_connect_refused ( self ) -> None:
		listener = socket.socket ( socket.AF_INET, socket.SOCK_STREAM )
		listener.bind ( ( '127.0.0.1', 0 ) )
		port = listener.getsockname()[1]
		listener.close() # nobody is listening on the port any more
		logging.disable ( logging.CRITICAL )
		try:
			with self.assertRaises ( ConnectionError ):
				SocketTransport.connect ( '127.0.0.1', port )
		finally:
			logging.disable ( logging.NOTSET )
	
	def test_trio ( self ) -> None:
		test = self
		async def _test() -> None:
			stream1, stream2 = trio.testing.memory_stream_pair()
			xport = TrioTransport ( stream1 )
			await xport.write ( b'ping\r\n' )
			test.assertEqual ( await stream2.receive_some(), b'ping\r\n' )
			await stream2.send_all ( b'pong\r\n' )
			test.assertEqual ( await xport.read(), b'pong\r\n' )
			
			xport.timeout = 0.01
			test.assertEqual ( repr ( xport ), 'transport_trio.TrioTransport(timeout=0.01)' )
			with test.assertRaises ( TimeoutError ):
				await xport.read()
			await xport.close()
		trio.run ( _test )

if __name__ == '__main__':
	logging.basicConfig ( level = logging.DEBUG )
	unittest.main()
