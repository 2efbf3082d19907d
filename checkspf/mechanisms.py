# -*- coding: utf-8 -*-
"""SPF mechanisms and modifiers"""

from __future__ import annotations

import ipaddress
from typing import Optional, Union

from checkspf.results import SPFResult, qualifier_results

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

MECHANISM_TYPES = ("all", "include", "a", "mx", "ptr", "ip4", "ip6", "exists")
MODIFIER_TYPES = ("redirect", "exp")

# Mechanisms that need more DNS data before they can be matched
DNS_MECHANISM_TYPES = ("a", "mx", "include")

DEFAULT_PREFIX_LENGTHS = {"ip4": 32, "ip6": 128}

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


class Mechanism(object):
    """
    A single term of an SPF record

    The ``type`` attribute tells the kind of term apart. Resolution fills in
    the attributes that belong to that kind:

    - ``a``: ``records``, a list of addresses
    - ``mx``: ``exchanges``, a list of
      :class:`checkspf.gateway.MXExchange`
    - ``ip4``/``ip6``: ``network``
    - ``include``: ``mechanisms``, the resolved mechanisms of the included
      domain, and once evaluated, ``evaluated``
    """

    def __init__(
        self,
        mechanism_type: str,
        value: Optional[str] = None,
        *,
        qualifier: str = "+",
        cidr4: Optional[int] = None,
        cidr6: Optional[int] = None,
    ):
        if qualifier not in qualifier_results:
            raise ValueError(f'Invalid qualifier "{qualifier}"')
        self.type = mechanism_type
        self.value = value
        self.qualifier = qualifier
        self.cidr4 = cidr4
        self.cidr6 = cidr6
        self.domain: Optional[str] = None
        self.network: Optional[IPNetwork] = None
        self.records: Optional[list[str]] = None
        self.exchanges: Optional[list] = None
        self.mechanisms: Optional[list[Mechanism]] = None
        self.evaluated: Optional[SPFResult] = None
        self.resolved = mechanism_type not in DNS_MECHANISM_TYPES

    @property
    def result(self) -> str:
        """The result name given by the qualifier when the mechanism matches"""
        return qualifier_results[self.qualifier]

    @property
    def is_modifier(self) -> bool:
        return self.type in MODIFIER_TYPES

    def __str__(self):
        if self.type == "version":
            return f"v={self.value}"
        if self.is_modifier:
            return f"{self.type}={self.value}"
        qualifier = "" if self.qualifier == "+" else self.qualifier
        term = f"{qualifier}{self.type}"
        if self.value:
            term += f":{self.value}"
        if self.cidr4 is not None:
            term += f"/{self.cidr4}"
        if self.cidr6 is not None:
            term += f"//{self.cidr6}"
        return term

    def __repr__(self):
        return f"<Mechanism {self}>"


def parse_network(mechanism: Mechanism) -> IPNetwork:
    """
    Parses the value of an ``ip4`` or ``ip6`` mechanism

    A missing prefix length is taken to be ``/32`` for ``ip4`` and ``/128``
    for ``ip6``.

    Raises:
        :exc:`ValueError`
    """
    value = mechanism.value or ""
    if "/" not in value:
        value = f"{value}/{DEFAULT_PREFIX_LENGTHS[mechanism.type]}"
    network = ipaddress.ip_network(value, strict=False)
    expected_version = 4 if mechanism.type == "ip4" else 6
    if network.version != expected_version:
        raise ValueError(f"{mechanism.value} is not a valid {mechanism.type} value")
    return network
