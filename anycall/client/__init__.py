"""Interactive construction and invocation of remote calls."""

from .builder import ParameterBuilder as ParameterBuilder
from .driver import invoke as invoke
from .lines import LineStream as LineStream
from .signature import MethodSignature as MethodSignature
from .signature import ParameterSpec as ParameterSpec
from .signature import resolve_method as resolve_method
