# python imports:
import contextlib
import logging
from pathlib import Path
import sys
from typing import Iterator
import unittest

if __name__=='__main__': # pragma: no cover
	sys.path.append ( str ( Path ( __file__ ).parent.parent.absolute() ) )

# dict_proto imports:
import base_proto

logger = logging.getLogger ( __name__ )

@contextlib.contextmanager
def quiet_logging ( quiet: bool = True ) -> Iterator[None]:
	try:
		if quiet:
			logging.disable ( logging.CRITICAL )
		yield None
	finally:
		if quiet:
			logging.disable ( logging.NOTSET )


class OkResponse ( base_proto.BaseResponse ):
	def is_success ( self ) -> bool:
		return True


class NotOkResponse ( base_proto.BaseResponse ):
	def is_success ( self ) -> bool:
		return False


class Tests ( unittest.TestCase ):
	def test_misc ( self ) -> None:
		test = self
		
		class BadResponse ( base_proto.BaseResponse ):
			def is_success ( self ) -> bool:
				return super().is_success()
		bad1 = BadResponse()
		with test.assertRaises ( NotImplementedError ):
			bad1.is_success()
		test.assertIsNone ( bad1.result )
		
		class BadRequest ( base_proto.BaseRequest ):
			def _client_protocol ( self, client: base_proto.ClientProtocol ) -> base_proto.RequestProtocolGenerator:
				return super()._client_protocol ( client )
		bad2 = BadRequest()
		with test.assertRaises ( NotImplementedError ):
			bad2._client_protocol ( base_proto.ClientProtocol() )
		
		test.assertEqual ( str ( base_proto.Closed() ), '(none given)' )
		test.assertEqual (
			repr ( base_proto.SendDataEvent ( b'foo', b'bar' ) ),
			"base_proto.SendDataEvent(chunks=(b'foo', b'bar'))",
		)
		
		def IsSendData ( evt: base_proto.Event ) -> base_proto.SendDataEvent:
			assert isinstance ( evt, base_proto.SendDataEvent )
			return evt
		
		class TestProtocol ( base_proto.Protocol ):
			_MAXLINE = 42
			def _receive_line ( self, line: bytes ) -> Iterator[base_proto.Event]:
				if line:
					yield base_proto.SendDataEvent ( line )
		tp = TestProtocol()
		evts = [ b''.join ( IsSendData ( evt ).chunks ) for evt in tp.receive ( b'foo\r' ) ]
		test.assertEqual ( evts, [] )
		evts = [ b''.join ( IsSendData ( evt ).chunks ) for evt in tp.receive ( b'\nba' ) ]
		test.assertEqual ( evts, [
			b'foo\r\n',
		] )
		evts = [ b''.join ( IsSendData ( evt ).chunks ) for evt in tp.receive ( b'ar\r\nbaz' ) ]
		test.assertEqual ( evts, [
			b'baar\r\n',
		] )
		evts = [ b''.join ( IsSendData ( evt ).chunks ) for evt in tp.receive ( b'' ) ]
		test.assertEqual ( evts, [
			b'baz',
		] )
		with test.assertRaises ( base_proto.Closed ):
			list ( tp.receive ( b'' ) )
		
		tp = TestProtocol()
		with test.assertRaises ( base_proto.ProtocolError ):
			list ( tp.receive ( b'X' * tp._MAXLINE ) )
		
		class BadProtocol ( base_proto.Protocol ):
			def _receive_line ( self, line: bytes ) -> Iterator[base_proto.Event]:
				return super()._receive_line ( line )
		bp = BadProtocol()
		with self.assertRaises ( NotImplementedError ):
			bp._receive_line ( b'' )
	
	def test_client_protocol ( self ) -> None:
		test = self
		
		class InvalidRequest ( base_proto.BaseRequest ):
			def _client_protocol ( self, client: base_proto.ClientProtocol ) -> base_proto.RequestProtocolGenerator:
				log = logger.getChild ( 'InvalidRequest._client_protocol' )
				log.debug ( 'yielding' )
				yield from () # this will trigger internal protocol error below
				log.debug ( 'returning' )
		cp = base_proto.ClientProtocol()
		with test.assertRaises ( base_proto.Closed ):
			try:
				with quiet_logging():
					list ( cp.send ( InvalidRequest() ) )
			except base_proto.Closed as e:
				test.assertEqual ( repr ( e ), "Closed('INTERNAL ERROR - CLIENT PROTOCOLS MUST THROW THEIR RESPONSE')" )
				raise
		
		class BrokenRequest ( base_proto.BaseRequest ):
			def _client_protocol ( self, client: base_proto.ClientProtocol ) -> base_proto.RequestProtocolGenerator:
				yield from ()
				raise ValueError ( 'boom' )
		with test.assertRaises ( base_proto.Closed ):
			try:
				with quiet_logging():
					list ( cp.send ( BrokenRequest() ) )
			except base_proto.Closed as e:
				test.assertEqual ( repr ( e ), '''Closed("ValueError('boom')")''' )
				raise
		
		class LineRequest ( base_proto.BaseRequest ):
			''' sends one line, answers OkResponse to "ok" and NotOkResponse to anything else '''
			def _client_protocol ( self, client: base_proto.ClientProtocol ) -> base_proto.RequestProtocolGenerator:
				yield base_proto.SendDataEvent ( b'LINE\r\n' )
				event = base_proto.NeedDataEvent()
				yield from event.go()
				if event.data == b'ok\r\n':
					raise OkResponse()
				raise NotOkResponse()
		
		r1, r2, r3 = LineRequest(), LineRequest(), LineRequest()
		for r in ( r1, r2, r3 ):
			test.assertEqual ( len ( list ( cp.send ( r ) ) ), 1 )
		test.assertEqual ( len ( cp.in_flight ), 3 )
		test.assertEqual ( list ( cp.receive ( b'ok\r\nok\r\n' ) ), [] )
		test.assertIsInstance ( r1.base_response, OkResponse )
		test.assertIsInstance ( r2.base_response, OkResponse )
		test.assertIsNone ( r3.base_response )
		with test.assertRaises ( NotOkResponse ):
			list ( cp.receive ( b'nope\r\n' ) )
		test.assertEqual ( len ( cp.in_flight ), 0 )
		with test.assertRaises ( base_proto.ProtocolError ):
			list ( cp.receive ( b'unsolicited\r\n' ) )
		
		r4, r5 = LineRequest(), LineRequest()
		list ( cp.send ( r4 ) )
		list ( cp.send ( r5 ) )
		cp.abandon ( 1 )
		test.assertEqual ( [ flight.request for flight in cp.in_flight ], [ r4 ] )
		list ( cp.receive ( b'ok\r\n' ) )
		test.assertIsInstance ( r4.base_response, OkResponse )
		test.assertIsNone ( r5.base_response )
	
	def test_exc_info ( self ) -> None:
		test = self
		
		class RecoveringRequest ( base_proto.BaseRequest ):
			def _client_protocol ( self, client: base_proto.ClientProtocol ) -> base_proto.RequestProtocolGenerator:
				try:
					yield base_proto.SendDataEvent ( b'first\r\n' )
				except KeyError:
					yield base_proto.SendDataEvent ( b'second\r\n' )
				raise OkResponse()
		
		cp = base_proto.ClientProtocol()
		r = RecoveringRequest()
		sent = []
		for event in cp.send ( r ):
			assert isinstance ( event, base_proto.SendDataEvent )
			sent.extend ( event.chunks )
			if not event.exc_info and event.chunks == ( b'first\r\n', ):
				try:
					raise KeyError ( 'first' )
				except KeyError:
					event.exc_info = sys.exc_info()
		test.assertEqual ( sent, [ b'first\r\n', b'second\r\n' ] )
		test.assertIsInstance ( r.base_response, OkResponse )
		test.assertEqual ( len ( cp.in_flight ), 0 )

if __name__ == '__main__':
	logging.basicConfig ( level = logging.DEBUG )
	unittest.main()
