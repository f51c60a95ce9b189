from .client import ChainClient
from .errors import ChainError, RPCError, SigningError
from .rocketpool import RocketPoolReader
from .signing_oracle import SigningOracle, SmartnodeDaemon
from .transaction_builder import TransactionBuilder, encode_call

__all__ = [
    "ChainClient",
    "RocketPoolReader",
    "SigningOracle",
    "SmartnodeDaemon",
    "TransactionBuilder",
    "encode_call",
    "ChainError",
    "RPCError",
    "SigningError",
]
