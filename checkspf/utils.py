# -*- coding: utf-8 -*-
"""DNS utility functions"""

from __future__ import annotations

import ipaddress
import logging
import re
import unicodedata
from typing import Optional
from collections.abc import Sequence

import dns.resolver
from dns.nameserver import Nameserver
import publicsuffixlist

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

ZERO_WIDTH_RE = re.compile(r"[\u200B-\u200D\uFEFF]")  # includes ZWSP, ZWNJ, ZWJ, BOM
DOMAIN_LABEL_REGEX = re.compile(r"^(?!-)[a-z0-9_\-]{1,63}(?<!-)$")
PSL = publicsuffixlist.PublicSuffixList()


def normalize_domain(domain: str) -> str:
    """
    Normalize an input domain by removing zero-width characters and lowering it

    Args:
        domain (str): A domain or subdomain

    Returns:
        str: A normalized domain
    """
    domain = unicodedata.normalize("NFC", domain)
    domain = ZERO_WIDTH_RE.sub("", domain)
    return domain.lower()


def is_valid_domain(domain: str) -> bool:
    """
    Checks that a domain is syntactically valid and ends in a known public
    suffix

    .. note::
        Suffixes are checked against the list of public domain suffixes at
        https://publicsuffix.org/list/public_suffix_list.dat.

    Args:
        domain (str): A domain or subdomain

    Returns:
        bool: ``True`` if the domain can hold an SPF record
    """
    if not isinstance(domain, str):
        return False
    domain = normalize_domain(domain.strip()).rstrip(".")
    if len(domain) == 0 or len(domain) > 253:
        return False
    for label in domain.split("."):
        if not DOMAIN_LABEL_REGEX.match(label):
            return False
    return PSL.publicsuffix(domain, accept_unknown=False) is not None


def is_valid_ip(ip_address: str) -> bool:
    """
    Checks if a string is an IPv4 or IPv6 address

    Args:
        ip_address (str): The string to check

    Returns:
        bool: ``True`` if the string is an IP address
    """
    if not isinstance(ip_address, str):
        return False
    try:
        ipaddress.ip_address(ip_address)
    except ValueError:
        return False
    return True


def query_dns(
    domain: str,
    record_type: str,
    *,
    nameservers: Optional[Sequence[str | Nameserver]] = None,
    resolver: Optional[dns.resolver.Resolver] = None,
    timeout: float = 2.0,
    timeout_retries: int = 0,
    _attempt: int = 0,
) -> list[str]:
    """
    Queries DNS

    TXT answers are returned with the character-strings of each record joined
    into a single string. Other answers are returned in their text form,
    without a trailing dot.

    Args:
        domain (str): The domain or subdomain to query about
        record_type (str): The record type to query for
        nameservers (list): A list of one or more nameservers to use
        resolver (dns.resolver.Resolver): A resolver object to use for DNS
                                          requests
        timeout (float): Sets the DNS timeout in seconds
        timeout_retries (int): The number of times to reattempt a query after a timeout

    Returns:
        list: A list of answers

    Raises:
        :exc:`dns.exception.DNSException`
    """
    domain = normalize_domain(domain)
    record_type = record_type.upper()
    if not resolver:
        resolver = dns.resolver.Resolver()
        timeout = float(timeout)
        if nameservers is not None:
            resolver.nameservers = nameservers
        resolver.timeout = timeout
        resolver.lifetime = timeout
    try:
        answers = resolver.resolve(domain, record_type, lifetime=timeout)
    except dns.resolver.LifetimeTimeout as e:
        _attempt += 1
        if _attempt > timeout_retries:
            raise e
        logging.debug(f"Retrying {record_type} query for {domain} after a timeout")
        return query_dns(
            domain,
            record_type,
            nameservers=nameservers,
            resolver=resolver,
            timeout=timeout,
            timeout_retries=timeout_retries,
            _attempt=_attempt,
        )
    if record_type == "TXT":
        # Join each sequence of byte chunks into a single bytes object
        resource_records = [b"".join(r.strings) for r in answers]
        records = [r.decode("utf-8", errors="replace") for r in resource_records]
    else:
        records = list(
            map(
                lambda r: r.to_text().rstrip("."),
                answers,
            )
        )

    return records
