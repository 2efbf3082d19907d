# -*- coding: utf-8 -*-
"""Matching a client address against resolved SPF mechanisms"""

from __future__ import annotations

import ipaddress
from typing import Optional, Union

from checkspf.mechanisms import Mechanism
from checkspf.results import SPFPermError, SPFResults

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

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _in_records(
    mechanism: Mechanism, address: IPAddress, records: list[str]
) -> bool:
    prefix_length = mechanism.cidr4 if address.version == 4 else mechanism.cidr6
    for record in records:
        if prefix_length is None:
            if ipaddress.ip_address(record) == address:
                return True
            continue
        network = ipaddress.ip_network(f"{record}/{prefix_length}", strict=False)
        if network.version == address.version and address in network:
            return True
    return False


def _match_version(mechanism, address, version):
    if mechanism.value != f"spf{version}":
        raise SPFPermError(f'Version "{mechanism.value}" not supported')
    return False


def _match_a(mechanism, address, version):
    return _in_records(mechanism, address, mechanism.records)


def _match_mx(mechanism, address, version):
    for exchange in mechanism.exchanges:
        if _in_records(mechanism, address, exchange.records):
            return True
    return False


def _match_ip(mechanism, address, version):
    if address.version != mechanism.network.version:
        return False
    return address in mechanism.network


def _match_include(mechanism, address, version):
    if mechanism.evaluated is None:
        raise SPFPermError(f'"include:{mechanism.value}" was not evaluated')
    if mechanism.evaluated.result == SPFResults.NONE:
        raise SPFPermError(f'Validation for "include:{mechanism.value}" missed')
    return mechanism.evaluated.result == SPFResults.PASS


def _match_all(mechanism, address, version):
    return True


# ptr and exists are not implemented
MATCHERS = {
    "version": _match_version,
    "a": _match_a,
    "mx": _match_mx,
    "ip4": _match_ip,
    "ip6": _match_ip,
    "include": _match_include,
    "all": _match_all,
}


def match(
    mechanism: Mechanism, address: Optional[IPAddress], version: int = 1
) -> bool:
    """
    Checks if a resolved mechanism matches a client address

    Args:
        mechanism (Mechanism): A resolved mechanism
        address: The client IP address. Only ``include`` mechanisms can be
                 matched without one.
        version (int): The SPF version in use

    Returns:
        bool: ``True`` if the mechanism matches

    Raises:
        :exc:`checkspf.results.SPFPermError`
    """
    matcher = MATCHERS.get(mechanism.type)
    if matcher is None:
        raise SPFPermError(f'Mechanism "{mechanism.type}" not supported')
    return matcher(mechanism, address, version)
