# -*- coding: utf-8 -*-
"""Options and per-check state"""

from __future__ import annotations

from typing import NamedTuple, Optional, Union
from collections.abc import Mapping, Sequence

import dns.resolver
from dns.nameserver import Nameserver

from checkspf._constants import (
    DNS_TIMEOUT,
    DNS_TIMEOUT_RETRIES,
    MAX_DNS_LOOKUPS,
    SPF_VERSION,
)

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

_OPTION_ALIASES = {"maxDNS": "max_dns", "max_dns_lookups": "max_dns"}


class SPFOptions(NamedTuple):
    """
    Options for an SPF check

    Attributes:
        version (int): The SPF version to accept, as in ``v=spf1``
        prefetch (bool): Resolve every mechanism before evaluating any of
                         them. This makes more DNS queries and can hit the
                         lookup limit sooner. ``redirect`` modifiers are
                         always resolved first regardless.
        max_dns (int): Hard limit on the number of DNS lookups, including
                       lookups caused by ``include`` mechanisms and
                       ``redirect`` modifiers
    """

    version: int = SPF_VERSION
    prefetch: bool = False
    max_dns: int = MAX_DNS_LOOKUPS

    @classmethod
    def from_value(
        cls, value: Union[SPFOptions, Mapping, None] = None
    ) -> SPFOptions:
        """
        Builds options from another ``SPFOptions``, a mapping, or ``None``

        Raises:
            :exc:`TypeError`
            :exc:`ValueError`
        """
        if value is None:
            return cls()
        if isinstance(value, SPFOptions):
            options = value
        elif isinstance(value, Mapping):
            kwargs = {}
            for key, option_value in value.items():
                key = _OPTION_ALIASES.get(key, key)
                if key not in cls._fields:
                    raise TypeError(f'Unknown SPF option "{key}"')
                kwargs[key] = option_value
            options = cls(**kwargs)
        else:
            raise TypeError(f"Unsupported SPF options: {value!r}")

        if not isinstance(options.version, int) or options.version < 1:
            raise ValueError(f"Invalid SPF version: {options.version!r}")
        if not isinstance(options.max_dns, int) or options.max_dns < 1:
            raise ValueError(f"Invalid DNS lookup limit: {options.max_dns!r}")
        return options._replace(prefetch=bool(options.prefetch))


class SPFContext(object):
    """
    State shared by every step of a single SPF check

    A context is created for each top level check and handed to every DNS
    lookup, resolution and evaluation step of that check. It is never reused
    by another check.
    """

    def __init__(
        self,
        options: Union[SPFOptions, Mapping, None] = None,
        *,
        record_type: str = "A",
        nameservers: Optional[Sequence[str | Nameserver]] = None,
        resolver: Optional[dns.resolver.Resolver] = None,
        timeout: float = DNS_TIMEOUT,
        timeout_retries: int = DNS_TIMEOUT_RETRIES,
    ):
        """
        Args:
            options (SPFOptions): The check options
            record_type (str): The address record type used by ``a`` and
                               ``mx`` mechanisms (``A`` or ``AAAA``)
            nameservers (list): A list of nameservers to query
            resolver (dns.resolver.Resolver): A resolver object to use for
                                              DNS requests
            timeout (float): number of seconds to wait for an answer from DNS
            timeout_retries (int): The number of times to reattempt a query
                                   after a timeout
        """
        self.options = SPFOptions.from_value(options)
        self.record_type = record_type
        self.nameservers = nameservers
        self.resolver = resolver
        self.timeout = timeout
        self.timeout_retries = timeout_retries
        self.dns_lookups = 0
        self.warnings: list[str] = []

    @property
    def lookups_remaining(self) -> int:
        return max(self.options.max_dns - self.dns_lookups, 0)

    def dns_kwargs(self) -> dict:
        return {
            "nameservers": self.nameservers,
            "resolver": self.resolver,
            "timeout": self.timeout,
            "timeout_retries": self.timeout_retries,
        }
