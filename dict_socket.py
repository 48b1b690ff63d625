from __future__ import annotations

# python imports:
import contextlib
import logging
from typing import Any, Iterator, List, Optional as Opt, Tuple, Type

# dict_proto imports:
import dict_proto as proto
import dict_sync
from transport_socket import SocketTransport as Transport

logger = logging.getLogger ( __name__ )


class Client ( dict_sync.Client ):
	@classmethod
	def connect ( cls: Type[Client],
		hostname: str,
		port: int = proto.DEFAULT_PORT,
	) -> Client:
		log = logger.getChild ( 'Client.connect' )
		transport = Transport.connect ( hostname, port )
		log.debug ( f'connected {transport!r}' )
		cli = cls ( transport, hostname )
		try:
			cli.greeting()
		except Exception:
			cli.close()
			raise
		return cli
	
	@classmethod
	@contextlib.contextmanager
	def session ( cls: Type[Client],
		client_id: str,
		hostname: str,
		port: int = proto.DEFAULT_PORT,
		user: Opt[str] = None,
		secret: Opt[str] = None,
	) -> Iterator[Tuple[Client,List[Any]]]:
		'''
		Connect, identify (and authenticate when given credentials), run the
		with-block's commands as one pipeline and disconnect. Yields the client
		and the pipeline's result list, which is filled in when the block exits.
		'''
		log = logger.getChild ( 'Client.session' )
		cli = cls.connect ( hostname, port )
		try:
			with cli.pipeline() as results:
				cli.client ( client_id )
				if user is not None and secret is not None:
					cli.authenticate ( user, secret )
				yield cli, results
				cli.disconnect()
			log.debug ( f'{len(results)} result(s) from {hostname}:{port}' )
		finally:
			cli.close()
