# -*- coding: utf-8 -*-
"""Fetching SPF policies and resolving their mechanisms"""

from __future__ import annotations

import logging
import re

from checkspf.context import SPFContext
from checkspf.gateway import resolve_dns, resolve_mx
from checkspf.mechanisms import Mechanism, parse_network
from checkspf.parser import parse_spf_record
from checkspf.results import SPFError, SPFNone, SPFPermError, SPFTempError
from checkspf.utils import normalize_domain

"""Copyright 2019-2025 Sean Whalen

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

   https://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License."""

NON_ASCII_REGEX = re.compile(r"[^\x00-\x7f]")


def fetch_policy(context: SPFContext, domain: str) -> list[Mechanism]:
    """
    Retrieves and parses the SPF record of a domain

    Args:
        context (SPFContext): The state of the running check
        domain (str): A domain name

    Returns:
        list: The parsed mechanisms, in the order they were declared

    Raises:
        :exc:`checkspf.results.SPFNone`
        :exc:`checkspf.results.SPFPermError`
        :exc:`checkspf.results.SPFTempError`
    """
    logging.debug(f"Checking for a SPF record on {domain}")
    txt_prefix = f"v=spf{context.options.version} "

    # https://datatracker.ietf.org/doc/html/rfc7208#section-4.5
    #
    # Records that do not begin with a version section are discarded
    records = [
        record
        for record in resolve_dns(context, domain, "TXT")
        if record.startswith(txt_prefix)
    ]

    if len(records) == 0:
        raise SPFNone("Assume that the domain makes no SPF declarations")
    if len(records) > 1:
        raise SPFPermError("There should be exactly one record remaining")

    record = records[0]
    if NON_ASCII_REGEX.search(record):
        raise SPFPermError(
            "Character content of the record should be encoded as US-ASCII"
        )

    parsed = parse_spf_record(record)
    errors = [m["message"] for m in parsed["messages"] if m["type"] == "error"]
    if len(errors) > 0:
        # Only the first error is reported so they can be fixed one at a time
        raise SPFPermError(errors[0])
    if not parsed["valid"]:
        raise SPFPermError("There shouldn't be any syntax errors")

    warnings = [m["message"] for m in parsed["messages"] if m["type"] == "warning"]
    context.warnings += [f"{domain}: {warning}" for warning in warnings]

    return parsed["mechanisms"]


def _target_domain(mechanism: Mechanism, domain: str) -> str:
    target = mechanism.value or domain
    if "%" in target:
        raise SPFPermError(
            f"Macro expansion is not supported: {mechanism.type}:{target}"
        )
    return normalize_domain(target).rstrip(".")


def _resolve_a(context: SPFContext, mechanism: Mechanism):
    mechanism.records = resolve_dns(context, mechanism.domain, context.record_type)


def _resolve_mx(context: SPFContext, mechanism: Mechanism):
    mechanism.exchanges = resolve_mx(context, mechanism.domain, context.record_type)


def _resolve_include(context: SPFContext, mechanism: Mechanism):
    logging.debug(f"Resolving include:{mechanism.domain}")
    mechanism.mechanisms = resolve_spf(context, mechanism.domain)


MECHANISM_RESOLVERS = {
    "a": _resolve_a,
    "mx": _resolve_mx,
    "include": _resolve_include,
}


def resolve_mechanism(context: SPFContext, mechanism: Mechanism):
    """
    Performs the DNS lookups a mechanism needs before it can be matched

    Raises:
        :exc:`checkspf.results.SPFError`
    """
    resolver = MECHANISM_RESOLVERS.get(mechanism.type)
    if resolver is not None:
        resolver(context, mechanism)
    mechanism.resolved = True


def resolve_spf(context: SPFContext, domain: str) -> list[Mechanism]:
    """
    Resolves the SPF record of a domain into a flat list of mechanisms

    ``redirect`` modifiers are followed right away when the record has no
    ``all`` mechanism, and the mechanisms of the target record take their
    place. ``a``, ``mx`` and ``include`` mechanisms are only resolved here
    when the ``prefetch`` option is set; otherwise they are resolved as they
    are evaluated.

    Args:
        context (SPFContext): The state of the running check
        domain (str): A domain name

    Returns:
        list: A list of :class:`checkspf.mechanisms.Mechanism`, ending with
        the ``all`` mechanism if there is one

    Raises:
        :exc:`checkspf.results.SPFError`
    """
    mechanisms = fetch_policy(context, domain)
    catch_all = any(m.type == "all" for m in mechanisms)

    resolved: list[Mechanism] = []
    for mechanism in mechanisms:
        if mechanism.type == "redirect":
            # redirect only has an effect when there is no all mechanism
            if not catch_all:
                target = _target_domain(mechanism, domain)
                logging.debug(f"Following redirect={target} from {domain}")
                resolved += resolve_spf(context, target)
            continue

        if mechanism.type == "exp":
            context.warnings.append(
                f"{domain}: The exp modifier is not evaluated: exp={mechanism.value}"
            )
            continue

        if mechanism.type in MECHANISM_RESOLVERS:
            mechanism.domain = _target_domain(mechanism, domain)

        if mechanism.type in ("ip4", "ip6"):
            try:
                mechanism.network = parse_network(mechanism)
            except ValueError:
                raise SPFPermError(f'Malformed "{mechanism.type}" address')

        if context.options.prefetch and not mechanism.resolved:
            # Fails fast in some cases that would pass without prefetching
            resolve_mechanism(context, mechanism)

        resolved.append(mechanism)

        if mechanism.type == "all":
            break

    return resolved


def get_mechanisms(context: SPFContext, domain: str) -> list[Mechanism]:
    """
    Resolves the mechanisms of a domain for a top level check

    Errors that are not SPF errors are reported as ``TempError``.

    Raises:
        :exc:`checkspf.results.SPFError`
    """
    try:
        mechanisms = resolve_spf(context, domain)
    except SPFError:
        raise
    except Exception as error:
        raise SPFTempError(str(error))

    if len(mechanisms) == 0:
        raise SPFTempError("No mechanisms found")

    return mechanisms
