# -*- coding: utf-8 -*-
"""Sender Policy Framework (SPF) check_host() evaluation"""

from __future__ import annotations

import ipaddress
import logging
from typing import Optional, Union
from collections.abc import Mapping, Sequence

import dns.resolver
from dns.nameserver import Nameserver

from checkspf._constants import DEFAULT_LOCAL_PART, DNS_TIMEOUT, DNS_TIMEOUT_RETRIES
from checkspf.context import SPFContext, SPFOptions
from checkspf.evaluate import evaluate, evaluate_include
from checkspf.policy import get_mechanisms
from checkspf.results import SPFError, SPFResult, SPFResults
from checkspf.utils import is_valid_domain, is_valid_ip, normalize_domain

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


class SPF(object):
    """
    Checks hosts against the SPF policy of a domain

    Each call to :meth:`check` or :meth:`check_include` runs with its own
    lookup count and warnings, so one instance can be reused.
    """

    def __init__(
        self,
        domain: str,
        sender: Optional[str] = None,
        options: Union[SPFOptions, Mapping, None] = None,
        *,
        nameservers: Optional[Sequence[str | Nameserver]] = None,
        resolver: Optional[dns.resolver.Resolver] = None,
        timeout: float = DNS_TIMEOUT,
        timeout_retries: int = DNS_TIMEOUT_RETRIES,
    ):
        """
        Args:
            domain (str): The domain to check
            sender (str): The sender email address. A sender without a local
                          part gets ``postmaster`` as its local part.
            options (SPFOptions): The check options
            nameservers (list): A list of nameservers to query
            resolver (dns.resolver.Resolver): A resolver object to use for
                                              DNS requests
            timeout (float): number of seconds to wait for an answer from DNS
            timeout_retries (int): The number of times to reattempt a query
                                   after a timeout
        """
        self.domain = domain
        if sender is None:
            sender = f"{DEFAULT_LOCAL_PART}@{domain}"
        if "@" not in sender:
            sender = f"{DEFAULT_LOCAL_PART}@{sender}"
        self.sender = sender
        self.options = SPFOptions.from_value(options)
        self.nameservers = nameservers
        self.resolver = resolver
        self.timeout = timeout
        self.timeout_retries = timeout_retries

    def _new_context(self, record_type: str) -> SPFContext:
        return SPFContext(
            self.options,
            record_type=record_type,
            nameservers=self.nameservers,
            resolver=self.resolver,
            timeout=self.timeout,
            timeout_retries=self.timeout_retries,
        )

    @staticmethod
    def _finish(context: SPFContext, result: SPFResult) -> SPFResult:
        return result.replace(
            warnings=context.warnings, dns_lookups=context.dns_lookups
        )

    def check(self, ip_address: str) -> SPFResult:
        """
        Checks if a host is authorized to send mail for the domain

        Args:
            ip_address (str): The IPv4 or IPv6 address of the client host

        Returns:
            SPFResult: The result of the check
        """
        if not is_valid_ip(ip_address):
            return SPFResult(SPFResults.NONE, "Malformed IP for comparison")
        if not is_valid_domain(self.domain):
            return SPFResult(
                SPFResults.NONE, "No SPF record can be found on malformed domain"
            )

        address = ipaddress.ip_address(ip_address)
        record_type = "A" if address.version == 4 else "AAAA"
        context = self._new_context(record_type)
        domain = normalize_domain(self.domain.strip()).rstrip(".")
        logging.debug(f"Checking {address} against the SPF record of {domain}")
        try:
            mechanisms = get_mechanisms(context, domain)
            result = evaluate(context, mechanisms, address)
        except SPFError as error:
            result = error.to_result()
        except Exception as error:
            result = SPFResult(SPFResults.PERMERROR, str(error))

        logging.debug(f"SPF result for {address} on {domain}: {result.result}")
        return self._finish(context, result)

    def check_include(self, required_domain: str) -> SPFResult:
        """
        Checks if the SPF record of the domain includes another domain,
        directly or through other includes

        Args:
            required_domain (str): The domain that should be included

        Returns:
            SPFResult: ``Pass`` if the domain is included, otherwise ``Fail``,
            or the error that stopped the search
        """
        if not is_valid_domain(self.domain):
            return SPFResult(
                SPFResults.NONE, "No SPF record can be found on malformed domain"
            )
        if not isinstance(required_domain, str) or required_domain == "":
            return SPFResult(SPFResults.NONE, "No domain to look for")

        context = self._new_context("A")
        domain = normalize_domain(self.domain.strip()).rstrip(".")
        logging.debug(f"Looking for include:{required_domain} in {domain}")
        try:
            mechanisms = get_mechanisms(context, domain)
            result = evaluate_include(context, mechanisms, required_domain)
        except SPFError as error:
            result = error.to_result()
        except Exception as error:
            result = SPFResult(SPFResults.PERMERROR, str(error))

        return self._finish(context, result)


def check_host(
    ip_address: str,
    domain: str,
    sender: Optional[str] = None,
    options: Union[SPFOptions, Mapping, None] = None,
    *,
    nameservers: Optional[Sequence[str | Nameserver]] = None,
    resolver: Optional[dns.resolver.Resolver] = None,
    timeout: float = DNS_TIMEOUT,
    timeout_retries: int = DNS_TIMEOUT_RETRIES,
) -> SPFResult:
    """
    Checks if a host is authorized to send mail for a domain

    Args:
        ip_address (str): The IPv4 or IPv6 address of the client host
        domain (str): The domain to check
        sender (str): The sender email address
        options (SPFOptions): The check options
        nameservers (list): A list of nameservers to query
        resolver (dns.resolver.Resolver): A resolver object to use for DNS
                                          requests
        timeout (float): number of seconds to wait for an answer from DNS
        timeout_retries (int): The number of times to reattempt a query after a timeout

    Returns:
        SPFResult: The result of the check
    """
    spf = SPF(
        domain,
        sender,
        options,
        nameservers=nameservers,
        resolver=resolver,
        timeout=timeout,
        timeout_retries=timeout_retries,
    )
    return spf.check(ip_address)


def check(
    ip_address: str,
    domain: str,
    sender: Optional[str] = None,
    options: Union[SPFOptions, Mapping, None] = None,
    *,
    nameservers: Optional[Sequence[str | Nameserver]] = None,
    resolver: Optional[dns.resolver.Resolver] = None,
    timeout: float = DNS_TIMEOUT,
    timeout_retries: int = DNS_TIMEOUT_RETRIES,
) -> str:
    """
    Checks if a host is authorized to send mail for a domain

    Takes the same arguments as :func:`check_host`.

    Returns:
        str: The result name, one of ``None``, ``Neutral``, ``Pass``,
        ``Fail``, ``SoftFail``, ``TempError`` or ``PermError``
    """
    return check_host(
        ip_address,
        domain,
        sender,
        options,
        nameservers=nameservers,
        resolver=resolver,
        timeout=timeout,
        timeout_retries=timeout_retries,
    ).result


def check_include(
    domain: str,
    required_domain: str,
    options: Union[SPFOptions, Mapping, None] = None,
    *,
    nameservers: Optional[Sequence[str | Nameserver]] = None,
    resolver: Optional[dns.resolver.Resolver] = None,
    timeout: float = DNS_TIMEOUT,
    timeout_retries: int = DNS_TIMEOUT_RETRIES,
) -> SPFResult:
    """
    Checks if the SPF record of a domain includes another domain

    Args:
        domain (str): The domain to check
        required_domain (str): The domain that should be included
        options (SPFOptions): The check options
        nameservers (list): A list of nameservers to query
        resolver (dns.resolver.Resolver): A resolver object to use for DNS
                                          requests
        timeout (float): number of seconds to wait for an answer from DNS
        timeout_retries (int): The number of times to reattempt a query after a timeout

    Returns:
        SPFResult: ``Pass`` if the domain is included, otherwise ``Fail``,
        or the error that stopped the search
    """
    spf = SPF(
        domain,
        options=options,
        nameservers=nameservers,
        resolver=resolver,
        timeout=timeout,
        timeout_retries=timeout_retries,
    )
    return spf.check_include(required_domain)
