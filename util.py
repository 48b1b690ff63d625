from typing import Union

BYTES = Union[bytes,bytearray,memoryview]
bytes_types = ( bytes, bytearray, memoryview )

def b2s ( b: BYTES, encoding: str = 'utf-8', errors: str = 'strict' ) -> str:
	return bytes ( b ).decode ( encoding, errors )

def s2b ( s: str, encoding: str = 'utf-8', errors: str = 'strict' ) -> bytes:
	return s.encode ( encoding, errors )

def chomp ( b: BYTES, encoding: str = 'utf-8', errors: str = 'strict' ) -> str:
	return b2s ( b, encoding, errors ).rstrip ( '\r\n' )
