# python imports:
import logging
from typing import Dict, List, Optional as Opt, Tuple

# dict_proto imports:
import dict_proto as proto
from event_handling import SyncClient

logger = logging.getLogger ( __name__ )


class Client ( SyncClient ):
	'''
	Synchronous DICT session. Every command blocks until its response has
	been read, except inside a `pipeline()` block where commands return None
	and their results show up in the pipeline's result list instead.
	'''
	protocls = proto.Client
	proto: proto.Client
	_client_id: Opt[str] = None
	
	@property
	def capabilities ( self ) -> Opt[Tuple[str,...]]:
		return self.proto.capabilities
	
	@property
	def msgid ( self ) -> Opt[str]:
		return self.proto.msgid
	
	@property
	def authentication ( self ) -> bool:
		''' True iff the server advertised the `auth` capability '''
		return self.proto.authentication
	
	def greeting ( self ) -> None:
		return self._command ( proto.GreetingRequest() )
	
	def authenticate ( self, user: str, secret: str ) -> None:
		return self._command ( proto.AuthRequest ( user, secret, self.proto.msgid ) )
	
	def client ( self, client_id: str ) -> None:
		self._client_id = client_id
		return self._command ( proto.ClientRequest ( client_id ) )
	
	@property
	def client_id ( self ) -> Opt[str]:
		return self._client_id
	
	@client_id.setter
	def client_id ( self, client_id: str ) -> None:
		self.client ( client_id )
	
	def status ( self ) -> str:
		return self._command ( proto.StatusRequest() )
	
	def databases ( self ) -> List[proto.MetaData]:
		return self._command ( proto.ShowDatabasesRequest() )
	
	def strategies ( self ) -> List[proto.MetaData]:
		return self._command ( proto.ShowStrategiesRequest() )
	
	def info ( self, database: str ) -> str:
		return self._command ( proto.ShowInfoRequest ( database ) )
	
	def help ( self ) -> str:
		return self._command ( proto.HelpRequest() )
	
	def server ( self ) -> str:
		return self._command ( proto.ShowServerRequest() )
	
	def match ( self,
		word: str,
		database: str = proto.DEFAULT_DATABASE,
		strategy: str = proto.DEFAULT_STRATEGY,
	) -> Dict[str,List[str]]:
		return self._command ( proto.MatchRequest ( word, database, strategy ) )
	
	def define ( self, word: str, database: str = proto.DEFAULT_DATABASE ) -> List[proto.Definition]:
		return self._command ( proto.DefineRequest ( word, database ) )
	
	def disconnect ( self ) -> None:
		request = proto.QuitRequest()
		
		def handler() -> None:
			try:
				self._wait ( request )
			finally:
				self.close()
		
		try:
			return self._command ( request, handler )
		except Exception:
			self.close()
			raise
