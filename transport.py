# python imports:
from abc import ABCMeta, abstractmethod
import logging
from typing import Optional as Opt

# dict_proto imports:
from util import BYTES

logger = logging.getLogger ( __name__ )


class Transport ( metaclass = ABCMeta ):
	'''
	The byte stream a DICT session runs over. A transport belongs to exactly
	one client, which closes it on disconnect.
	'''
	timeout: Opt[float] = 30.0 # seconds per read or write, None waits forever
	
	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}(timeout={self.timeout!r})'


class SyncTransport ( Transport ):
	@abstractmethod
	def read ( self ) -> bytes:
		''' block until some bytes arrive, b'' means the server hung up '''
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.read()' )
	
	@abstractmethod
	def write ( self, data: BYTES ) -> None:
		''' send all of `data` or raise '''
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.write()' )
	
	@abstractmethod
	def close ( self ) -> None:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.close()' )


class AsyncTransport ( Transport ):
	@abstractmethod
	async def read ( self ) -> bytes:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.read()' )
	
	@abstractmethod
	async def write ( self, data: BYTES ) -> None:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.write()' )
	
	@abstractmethod
	async def close ( self ) -> None:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.close()' )
