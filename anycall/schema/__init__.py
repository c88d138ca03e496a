"""anycall schema language."""

from .parser import SchemaError as SchemaError
from .parser import parse as parse
from .parser import parse_type as parse_type
from .parser import validate as validate
from .types import *
