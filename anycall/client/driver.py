"""Invocation driver: resolve, build arguments, call, report."""

import logging
from typing import Any

from anycall.errors import MissingArgumentError
from anycall.proto.runtime import ServiceStub

from .builder import ParameterBuilder
from .lines import LineStream
from .signature import resolve_method

logger = logging.getLogger(__name__)


def _format_args(args: list[Any]) -> str:
    return ", ".join(repr(a) for a in args)


def invoke(stub: ServiceStub, method_name: str, lines: LineStream, *, strict: bool = False) -> Any:
    """Build the arguments of ``method_name`` from ``lines`` and call it once.

    Progress is reported on the console of ``lines``, next to its prompts.

    Args:
        stub: Client for the target service.
        method_name: Method to call; the first declared match is used.
        lines: Source of prompted input.
        strict: Refuse to send a call with a blank top-level argument.

    Returns:
        The remote result (None for void methods).
    """
    signature = resolve_method(stub.registry, stub.service, method_name)
    logger.debug("Resolved %s", signature)

    builder = ParameterBuilder(stub.registry, lines)
    args: list[Any] = []
    for spec in signature.parameters:
        value = builder.build(spec)
        if value is None and strict:
            raise MissingArgumentError(signature.name, spec.name)
        lines.report(f"Adding {value!r} to params for {spec.name}")
        args.append(value)

    lines.report(f"Querying {signature.service}.{signature.name}({_format_args(args)})")
    result = stub.call(signature.name, args)
    lines.report(repr(result))
    return result
