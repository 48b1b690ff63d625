from __future__ import annotations

# python imports:
from abc import ABCMeta
import contextlib
import enum
from functools import partial
import logging
import sys
from typing import (
	Any, AsyncIterator, Awaitable, Callable, Iterator, List, Optional as Opt,
	Type,
)

# dict_proto imports:
from base_proto import (
	BaseRequest, RequestType, ResponseType, Event, SendDataEvent,
	ClientProtocol, Closed,
)
from transport import SyncTransport, AsyncTransport
from util import b2s

logger = logging.getLogger ( __name__ )


class Sink ( enum.Enum ):
	''' where outgoing request bytes go '''
	TRANSPORT = 'transport' # written immediately
	STAGING = 'staging' # held until a pipeline flushes them in one write


@contextlib.contextmanager
def _event_exception_safety ( event: Event ) -> Iterator[None]:
	try:
		yield
	except Exception:
		event.exc_info = sys.exc_info()


@contextlib.contextmanager
def close_if_oserror() -> Iterator[None]:
	try:
		yield
	except OSError as e:
		raise Closed ( repr ( e ) ) from e


def _wire ( data: bytes ) -> str:
	return b2s ( data, errors = 'replace' ).rstrip()


class Client ( metaclass = ABCMeta ):
	protocls: Type[ClientProtocol]
	proto: ClientProtocol
	sink: Sink = Sink.TRANSPORT
	closed: bool = False
	_staging: bytearray
	_deferred: Opt[List[Callable[[],Any]]] = None
	
	def __init__ ( self, server_hostname: str ) -> None:
		self.server_hostname = server_hostname
		self.proto = self.protocls()
		self._staging = bytearray()
	
	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}({self.server_hostname!r})'
	
	def _stage ( self, chunk: bytes ) -> bool:
		log = logger.getChild ( 'Client._stage' )
		log.debug ( f'C>{_wire(chunk)}' )
		if self.sink is Sink.STAGING:
			self._staging += chunk
			return True
		return False
	
	def _begin_pipeline ( self ) -> int:
		assert self._deferred is None, 'pipelines cannot be nested'
		self.sink = Sink.STAGING
		self._deferred = []
		return len ( self.proto.in_flight )
	
	def _end_pipeline ( self ) -> bytes:
		self.sink = Sink.TRANSPORT
		self._deferred = None
		staged, self._staging = bytes ( self._staging ), bytearray()
		return staged


class SyncClient ( Client ):
	transport: SyncTransport
	
	def __init__ ( self,
		transport: SyncTransport,
		server_hostname: str,
	) -> None:
		self.transport = transport
		super().__init__ ( server_hostname )
	
	def on_SendDataEvent ( self, event: SendDataEvent ) -> None:
		for chunk in event.chunks:
			if not self._stage ( chunk ):
				self.transport.write ( chunk )
	
	def _on_event ( self, event: Event ) -> None:
		#log = logger.getChild ( 'SyncClient._on_event' )
		with _event_exception_safety ( event ):
			func = getattr ( self, f'on_{type(event).__name__}' )
			func ( event )
	
	def _send ( self, request: BaseRequest ) -> None:
		for event in self.proto.send ( request ):
			self._on_event ( event )
	
	def _wait ( self, request: RequestType[ResponseType] ) -> ResponseType:
		log = logger.getChild ( 'SyncClient._wait' )
		for event in self.proto.pump():
			self._on_event ( event )
		while request.base_response is None:
			with close_if_oserror():
				data: bytes = self.transport.read()
			log.debug ( f'S>{_wire(data)}' )
			for event in self.proto.receive ( data ):
				self._on_event ( event )
		return request.response
	
	def _result ( self, request: RequestType[ResponseType] ) -> Any:
		return self._wait ( request ).result
	
	def _command ( self,
		request: RequestType[ResponseType],
		handler: Opt[Callable[[],Any]] = None,
	) -> Any:
		'''
		Send a request. Outside a pipeline the response is handled right away and
		its result returned, inside a pipeline the handler is queued and None
		is returned.
		'''
		self._send ( request )
		if handler is None:
			handler = partial ( self._result, request )
		if self._deferred is not None:
			self._deferred.append ( handler )
			return None
		return handler()
	
	@contextlib.contextmanager
	def pipeline ( self ) -> Iterator[List[Any]]:
		'''
		Batch every command issued inside the with-block into a single write.
		The yielded list is filled in with the commands' results, in order,
		when the block exits. Acknowledgment-only commands contribute nothing.
		'''
		log = logger.getChild ( 'SyncClient.pipeline' )
		results: List[Any] = []
		keep = self._begin_pipeline()
		deferred = self._deferred
		assert deferred is not None
		flushed = False
		try:
			yield results
			staged = self._end_pipeline()
			flushed = True
			log.debug ( f'flushing {len(staged)} bytes for {len(deferred)} deferred response(s)' )
			if staged:
				with close_if_oserror():
					self.transport.write ( staged )
			for handler in deferred:
				value = handler()
				if value is not None:
					results.append ( value )
		finally:
			if not flushed:
				self._end_pipeline()
				self.proto.abandon ( keep )
	
	def close ( self ) -> None:
		if self.closed:
			return
		self.closed = True
		self.transport.close()


class AsyncClient ( Client ):
	transport: AsyncTransport
	
	def __init__ ( self,
		transport: AsyncTransport,
		server_hostname: str,
	) -> None:
		self.transport = transport
		super().__init__ ( server_hostname )
	
	async def on_SendDataEvent ( self, event: SendDataEvent ) -> None:
		for chunk in event.chunks:
			if not self._stage ( chunk ):
				await self.transport.write ( chunk )
	
	async def _on_event ( self, event: Event ) -> None:
		#log = logger.getChild ( 'AsyncClient._on_event' )
		with _event_exception_safety ( event ):
			func = getattr ( self, f'on_{type(event).__name__}' )
			await func ( event )
	
	async def _send ( self, request: BaseRequest ) -> None:
		for event in self.proto.send ( request ):
			await self._on_event ( event )
	
	async def _wait ( self, request: RequestType[ResponseType] ) -> ResponseType:
		log = logger.getChild ( 'AsyncClient._wait' )
		for event in self.proto.pump():
			await self._on_event ( event )
		while request.base_response is None:
			with close_if_oserror():
				data: bytes = await self.transport.read()
			log.debug ( f'S>{_wire(data)}' )
			for event in self.proto.receive ( data ):
				await self._on_event ( event )
		return request.response
	
	async def _result ( self, request: RequestType[ResponseType] ) -> Any:
		return ( await self._wait ( request ) ).result
	
	async def _command ( self,
		request: RequestType[ResponseType],
		handler: Opt[Callable[[],Awaitable[Any]]] = None,
	) -> Any:
		await self._send ( request )
		if handler is None:
			handler = partial ( self._result, request )
		if self._deferred is not None:
			self._deferred.append ( handler )
			return None
		return await handler()
	
	@contextlib.asynccontextmanager
	async def pipeline ( self ) -> AsyncIterator[List[Any]]:
		log = logger.getChild ( 'AsyncClient.pipeline' )
		results: List[Any] = []
		keep = self._begin_pipeline()
		deferred = self._deferred
		assert deferred is not None
		flushed = False
		try:
			yield results
			staged = self._end_pipeline()
			flushed = True
			log.debug ( f'flushing {len(staged)} bytes for {len(deferred)} deferred response(s)' )
			if staged:
				with close_if_oserror():
					await self.transport.write ( staged )
			for handler in deferred:
				value = await handler()
				if value is not None:
					results.append ( value )
		finally:
			if not flushed:
				self._end_pipeline()
				self.proto.abandon ( keep )
	
	async def close ( self ) -> None:
		if self.closed:
			return
		self.closed = True
		await self.transport.close()
