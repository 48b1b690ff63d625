from __future__ import annotations

# python imports:
import logging
import math
import trio # pip install trio
from typing import Type

# dict_proto imports:
from transport import AsyncTransport
from util import BYTES

logger = logging.getLogger ( __name__ )


class TrioTransport ( AsyncTransport ):
	happy_eyeballs_delay: float = 0.25 # this is the same as trio's default circa version 0.16.0
	stream: trio.abc.Stream
	
	def __init__ ( self, stream: trio.abc.Stream ) -> None:
		self.stream = stream
	
	@classmethod
	async def connect ( cls: Type[TrioTransport], hostname: str, port: int ) -> TrioTransport:
		#log = logger.getChild ( 'TrioTransport.connect' )
		stream = await trio.open_tcp_stream ( hostname, port,
			happy_eyeballs_delay = cls.happy_eyeballs_delay,
		)
		return cls ( stream )
	
	def _deadline ( self ) -> float:
		return math.inf if self.timeout is None else self.timeout
	
	async def read ( self ) -> bytes:
		#log = logger.getChild ( 'TrioTransport.read' )
		with trio.move_on_after ( self._deadline() ):
			return await self.stream.receive_some()
		raise TimeoutError ( f'{type(self).__module__}.{type(self).__name__} timeout waiting to read data' )
	
	async def write ( self, data: BYTES ) -> None:
		#log = logger.getChild ( 'TrioTransport.write' )
		with trio.move_on_after ( self._deadline() ):
			await self.stream.send_all ( data )
			return
		raise TimeoutError ( f'{type(self).__module__}.{type(self).__name__} timeout waiting to write {bytes(data)=}' )
	
	async def close ( self ) -> None:
		#log = logger.getChild ( 'TrioTransport.close' )
		with trio.move_on_after ( 0.05 ):
			await self.stream.aclose()
