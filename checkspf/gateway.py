# -*- coding: utf-8 -*-
"""DNS lookups counted against the SPF lookup limit"""

from __future__ import annotations

import logging
from typing import NamedTuple

import dns.exception
import dns.resolver

from checkspf.context import SPFContext
from checkspf.results import SPFNone, SPFPermError, SPFTempError
from checkspf.utils import query_dns

"""Copyright 2019-2023 Sean Whalen

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

   https://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License."""


class MXExchange(NamedTuple):
    priority: int
    exchange: str
    records: list[str]


def _error_message(error: Exception) -> str:
    if isinstance(error, dns.exception.Timeout) and "timeout" in error.kwargs:
        error.kwargs["timeout"] = round(error.kwargs["timeout"], 1)
    return str(error)


def resolve_dns(
    context: SPFContext,
    name: str,
    record_type: str,
    count: bool = True,
) -> list[str]:
    """
    Looks up DNS records on behalf of an SPF check

    The lookup limit is checked before the query is sent, and a counted
    query is added to the total once it completes, whether it succeeded or
    not.

    Args:
        context (SPFContext): The state of the running check
        name (str): The name to query
        record_type (str): The record type to query for
        count (bool): Count the query against the lookup limit

    Returns:
        list: A list of records. TXT records have their character-strings
        joined together.

    Raises:
        :exc:`checkspf.results.SPFNone`
        :exc:`checkspf.results.SPFPermError`
        :exc:`checkspf.results.SPFTempError`
    """
    if count and context.dns_lookups >= context.options.max_dns:
        raise SPFPermError("Limit of DNS lookups reached")
    logging.debug(
        f"Getting {record_type} records for {name} "
        f"({context.lookups_remaining} lookups remaining)"
    )
    try:
        records = query_dns(name, record_type, **context.dns_kwargs())
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
        raise SPFNone("Domain does not exist")
    except Exception as error:
        raise SPFTempError(_error_message(error))
    finally:
        if count:
            context.dns_lookups += 1

    return records


def resolve_mx(
    context: SPFContext, name: str, record_type: str
) -> list[MXExchange]:
    """
    Looks up the mail exchanges of a domain and their addresses

    Only the MX query counts against the lookup limit, but a domain with as
    many exchanges as the limit is rejected before any address is looked up.

    Args:
        context (SPFContext): The state of the running check
        name (str): The domain to query
        record_type (str): The address record type (``A`` or ``AAAA``)

    Returns:
        list: A list of :class:`MXExchange` sorted by priority

    Raises:
        :exc:`checkspf.results.SPFPermError`
        :exc:`checkspf.results.SPFTempError`
    """
    exchanges = []
    for record in resolve_dns(context, name, "MX"):
        preference, _, hostname = record.partition(" ")
        hostname = hostname.rstrip(".").strip().lower()
        if hostname == "":
            logging.debug('"No Service" MX record found')
            continue
        exchanges.append((int(preference), hostname))

    if len(exchanges) >= context.options.max_dns:
        raise SPFPermError(
            "Limit of DNS lookups reached when processing MX mechanism"
        )

    hosts = []
    for priority, hostname in exchanges:
        records = resolve_dns(context, hostname, record_type, count=False)
        hosts.append(MXExchange(priority, hostname, records))

    return sorted(hosts, key=lambda h: h.priority)
