"""Runtime: schema registry, codecs and call transport."""

from .crc import CrcSize as CrcSize
from .registry import SchemaRegistry as SchemaRegistry
from .resolver import classify as classify
from .runtime import Connection as Connection
from .runtime import ServiceEndpoint as ServiceEndpoint
from .runtime import ServiceStub as ServiceStub
from .runtime import Transport as Transport
from .serialization import Record as Record
from .serialization import SchemaEnum as SchemaEnum
from .serialization import SerializationError as SerializationError
from .types import *
