# python imports:
import logging
from typing import Dict, List, Optional as Opt, Tuple

# dict_proto imports:
from event_handling import AsyncClient
import dict_proto as proto

logger = logging.getLogger ( __name__ )


class Client ( AsyncClient ):
	protocls = proto.Client
	proto: proto.Client
	client_id: Opt[str] = None # last identification sent with client()
	
	@property
	def capabilities ( self ) -> Opt[Tuple[str,...]]:
		return self.proto.capabilities
	
	@property
	def msgid ( self ) -> Opt[str]:
		return self.proto.msgid
	
	@property
	def authentication ( self ) -> bool:
		return self.proto.authentication
	
	async def greeting ( self ) -> None:
		return await self._command ( proto.GreetingRequest() )
	
	async def authenticate ( self, user: str, secret: str ) -> None:
		return await self._command ( proto.AuthRequest ( user, secret, self.proto.msgid ) )
	
	async def client ( self, client_id: str ) -> None:
		self.client_id = client_id
		return await self._command ( proto.ClientRequest ( client_id ) )
	
	async def status ( self ) -> str:
		return await self._command ( proto.StatusRequest() )
	
	async def databases ( self ) -> List[proto.MetaData]:
		return await self._command ( proto.ShowDatabasesRequest() )
	
	async def strategies ( self ) -> List[proto.MetaData]:
		return await self._command ( proto.ShowStrategiesRequest() )
	
	async def info ( self, database: str ) -> str:
		return await self._command ( proto.ShowInfoRequest ( database ) )
	
	async def help ( self ) -> str:
		return await self._command ( proto.HelpRequest() )
	
	async def server ( self ) -> str:
		return await self._command ( proto.ShowServerRequest() )
	
	async def match ( self,
		word: str,
		database: str = proto.DEFAULT_DATABASE,
		strategy: str = proto.DEFAULT_STRATEGY,
	) -> Dict[str,List[str]]:
		return await self._command ( proto.MatchRequest ( word, database, strategy ) )
	
	async def define ( self, word: str, database: str = proto.DEFAULT_DATABASE ) -> List[proto.Definition]:
		return await self._command ( proto.DefineRequest ( word, database ) )
	
	async def disconnect ( self ) -> None:
		request = proto.QuitRequest()
		
		async def handler() -> None:
			try:
				await self._wait ( request )
			finally:
				await self.close()
		
		try:
			return await self._command ( request, handler )
		except Exception:
			await self.close()
			raise
