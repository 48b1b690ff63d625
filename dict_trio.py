from __future__ import annotations

# python imports:
import contextlib
import logging
from typing import Any, AsyncIterator, List, Optional as Opt, Tuple, Type

# dict_proto imports:
import dict_proto as proto
import dict_async
from transport_trio import TrioTransport as Transport

logger = logging.getLogger ( __name__ )


class Client ( dict_async.Client ):
	@classmethod
	async def connect ( cls: Type[Client],
		hostname: str,
		port: int = proto.DEFAULT_PORT,
	) -> Client:
		transport = await Transport.connect ( hostname, port )
		cli = cls ( transport, hostname )
		try:
			await cli.greeting()
		except Exception:
			await cli.close()
			raise
		return cli
	
	@classmethod
	@contextlib.asynccontextmanager
	async def session ( cls: Type[Client],
		client_id: str,
		hostname: str,
		port: int = proto.DEFAULT_PORT,
		user: Opt[str] = None,
		secret: Opt[str] = None,
	) -> AsyncIterator[Tuple[Client,List[Any]]]:
		cli = await cls.connect ( hostname, port )
		try:
			async with cli.pipeline() as results:
				await cli.client ( client_id )
				if user is not None and secret is not None:
					await cli.authenticate ( user, secret )
				yield cli, results
				await cli.disconnect()
		finally:
			await cli.close()
