from __future__ import annotations

# python imports:
from abc import ABCMeta, abstractmethod
from collections import deque
import logging
from types import TracebackType
from typing import (
	Any, Callable, Deque, Generator, Generic, Iterator, Optional as Opt,
	Sequence as Seq, Tuple, Type, TypeVar, Union,
)

# dict_proto imports:
from util import bytes_types, BYTES, s2b

logger = logging.getLogger ( __name__ )

EXC_INFO = Opt[Union[
	Tuple[Type[BaseException],BaseException,TracebackType],
	Tuple[None,None,None],
]]


class Event ( Exception ):
	exc_info: EXC_INFO = None
	
	def go ( self ) -> Iterator[Event]:
		yield self
	
	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}()'


class Closed ( Exception ):
	def __init__ ( self, reason: str = '' ) -> None:
		super().__init__ ( reason or '(none given)' )


class ProtocolError ( Exception ):
	pass


ResponseType = TypeVar ( 'ResponseType', bound = 'BaseResponse' )
class BaseResponse ( Exception, metaclass = ABCMeta ):
	@abstractmethod
	def is_success ( self ) -> bool:
		cls = self.__class__
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.is_success()' )
	
	@property
	def result ( self ) -> Any:
		# the value a front end hands back to its caller, None for plain acknowledgments
		return None


RequestProtocolGenerator = Generator[Event,None,None]


class BaseRequest ( metaclass = ABCMeta ):
	# this class is the basis of all client command handling
	# 1) client uses __init__() to construct request
	# 2) _client_protocol() implements client-side state machine
	# 3) the state machine finishes by raising its response
	base_response: Opt[BaseResponse] = None
	
	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}()'
	
	@abstractmethod
	def _client_protocol ( self, client: ClientProtocol ) -> RequestProtocolGenerator:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}._client_protocol()' )


class RequestT ( BaseRequest, Generic[ResponseType] ):
	responsecls: Type[ResponseType]
	
	@property
	def response ( self ) -> ResponseType:
		assert isinstance ( self.base_response, self.responsecls )
		return self.base_response
RequestType = RequestT[ResponseType]


class NeedDataEvent ( Event ):
	data: Opt[bytes] = None
	response: Opt[BaseResponse] = None
	
	def reset ( self ) -> NeedDataEvent:
		self.data = None
		self.response = None
		return self
	
	def go ( self ) -> Iterator[Event]:
		self.reset()
		yield from super().go()


class SendDataEvent ( Event ):

	def __init__ ( self, *chunks: bytes ) -> None:
		self.chunks: Seq[bytes] = chunks
	
	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}(chunks={self.chunks!r})'


class Protocol ( metaclass = ABCMeta ):
	_buf: bytes = b''
	_MAXLINE: int
	
	def receive ( self, data: bytes ) -> Iterator[Event]:
		#log = logger.getChild ( 'Protocol.receive' )
		assert isinstance ( data, bytes_types ), f'invalid {data=}'
		if not data: # EOF indicator
			if self._buf:
				buf, self._buf = self._buf, b''
				yield from self._receive_line ( buf )
				return
			raise Closed ( 'EOF' )
		self._buf += data
		yield from self.pump()
	
	def pump ( self ) -> Iterator[Event]:
		''' process whatever complete lines are already buffered '''
		start = 0
		end = 0
		try:
			while ( end := ( self._buf.find ( b'\n', start ) + 1 ) ):
				line = self._buf[start:end]
				start = end
				yield from self._receive_line ( line )
		finally:
			if start:
				self._buf = self._buf[start:]
		if len ( self._buf ) >= self._MAXLINE:
			raise ProtocolError ( 'maximum line length exceeded' )
	
	@abstractmethod
	def _receive_line ( self, line: bytes ) -> Iterator[Event]:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}._receive_line()' )


class InFlight:
	''' a request that has been sent and is waiting on the server '''
	need_data: Opt[NeedDataEvent] = None
	
	def __init__ ( self, request: BaseRequest, request_protocol: RequestProtocolGenerator ) -> None:
		self.request = request
		self.request_protocol = request_protocol
	
	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}({self.request!r})'


class ClientProtocol ( Protocol ):
	'''
	Requests are answered in the order they were sent, so any number of them
	can be on the wire at once. Each received line goes to the oldest request
	still waiting for data.
	'''
	
	def __init__ ( self ) -> None:
		self.in_flight: Deque[InFlight] = deque()
	
	def send ( self, request: BaseRequest ) -> Iterator[Event]:
		#log = logger.getChild ( 'ClientProtocol.send' )
		flight = InFlight ( request, request._client_protocol ( self ) )
		yield from self._run_protocol ( flight )
		if flight.need_data is not None:
			self.in_flight.append ( flight )
	
	def abandon ( self, keep: int ) -> None:
		''' forget the newest requests, leaving the oldest `keep` of them in flight '''
		log = logger.getChild ( 'ClientProtocol.abandon' )
		while len ( self.in_flight ) > keep:
			flight = self.in_flight.pop()
			log.debug ( f'abandoning {flight!r}' )
			flight.request_protocol.close()
	
	def _receive_line ( self, line: BYTES ) -> Iterator[Event]:
		#log = logger.getChild ( 'ClientProtocol._receive_line' )
		if not self.in_flight:
			raise ProtocolError ( f'not expecting data at this time ({bytes(line)!r})' )
		flight = self.in_flight[0]
		assert flight.need_data is not None
		flight.need_data.data = bytes ( line )
		flight.need_data = None
		try:
			yield from self._run_protocol ( flight )
		finally:
			if flight.need_data is None:
				self.in_flight.popleft()
	
	def _run_protocol ( self, flight: InFlight ) -> Iterator[Event]:
		log = logger.getChild ( 'ClientProtocol._run_protocol' )
		request = flight.request
		try:
			event = next ( flight.request_protocol )
			while True:
				if isinstance ( event, NeedDataEvent ):
					if request.base_response is not None:
						log.warning ( f'INTERNAL ERROR - {request!r} pushed NeedDataEvent but has a response set - this can cause upstack deadlock ({request.base_response!r})' )
						request.base_response = None
					flight.need_data = event.reset()
					return
				yield event
				if event.exc_info:
					event = flight.request_protocol.throw ( event.exc_info[1] )
				else:
					event = next ( flight.request_protocol )
		except Closed:
			raise
		except BaseResponse as response:
			if not response.is_success():
				raise
			request.base_response = response
		except StopIteration:
			# client protocol *must* raise its response before exiting
			# if not, the front end will get stuck waiting for data that never arrives
			log.error (
				f'INTERNAL ERROR:'
				f' {type(request).__module__}.{type(request).__name__}'
				f'._client_protocol() exit w/o response - this can cause upstack deadlock'
			)
			raise Closed ( 'INTERNAL ERROR - CLIENT PROTOCOLS MUST THROW THEIR RESPONSE' )
		except Exception as e:
			log.exception ( 'internal protocol error:' )
			raise Closed ( repr ( e ) ) from e

#region client protocol helpers

class ClientUtil:
	def __init__ ( self,
		parser: Callable[[BYTES],BaseResponse],
		encoding: str = 'us-ascii',
	) -> None:
		self.parser = parser
		self.encoding = encoding
	
	def send ( self, line: str ) -> Iterator[Event]:
		assert line.endswith ( '\r\n' ), f'invalid {line=}'
		yield from SendDataEvent ( s2b ( line, self.encoding ) ).go()
	
	def recv_ok ( self, event: Opt[NeedDataEvent] = None ) -> Iterator[Event]:
		if event is None:
			event = NeedDataEvent()
		yield from event.reset().go()
		event.response = response = self.parser ( event.data or b'' )
		if not response.is_success():
			raise response
	
	def send_recv_ok ( self, line: str, event: Opt[NeedDataEvent] = None ) -> Iterator[Event]:
		yield from self.send ( line )
		yield from self.recv_ok ( event )

#endregion client protocol helpers
