# -*- coding: utf-8 -*-
"""Evaluation of resolved SPF mechanisms"""

from __future__ import annotations

import logging
from typing import Optional

from checkspf.context import SPFContext
from checkspf.matcher import IPAddress, match
from checkspf.mechanisms import Mechanism
from checkspf.policy import resolve_mechanism
from checkspf.results import SPFNone, SPFPermError, SPFResult, SPFResults

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


def _matched_result(mechanism: Mechanism, result: Optional[str] = None) -> SPFResult:
    matched = [mechanism.type]
    if mechanism.type == "include":
        matched = list(mechanism.evaluated.matched) + matched
    return SPFResult(
        result or mechanism.result, mechanism=mechanism.type, matched=matched
    )


def evaluate(
    context: SPFContext, mechanisms: list[Mechanism], address: IPAddress
) -> SPFResult:
    """
    Evaluates mechanisms in order against a client address

    Mechanisms that still need DNS data are resolved just before they are
    matched. The first mechanism that matches decides the result.

    Args:
        context (SPFContext): The state of the running check
        mechanisms (list): Mechanisms returned by
                           :func:`checkspf.policy.resolve_spf`
        address: The client IP address

    Returns:
        SPFResult: The result of the first matching mechanism, or
        ``Neutral`` if none match, just as if ``?all`` were the last
        mechanism

    Raises:
        :exc:`checkspf.results.SPFError`
    """
    for mechanism in mechanisms:
        if not mechanism.resolved:
            resolve_mechanism(context, mechanism)

        if mechanism.type == "include":
            mechanism.evaluated = evaluate(context, mechanism.mechanisms, address)

        if match(mechanism, address, context.options.version):
            logging.debug(f"{mechanism} matched {address}")
            return _matched_result(mechanism)

    return SPFResult(SPFResults.NEUTRAL)


def evaluate_include(
    context: SPFContext,
    mechanisms: list[Mechanism],
    domain: str,
    pending: Optional[list[Mechanism]] = None,
) -> SPFResult:
    """
    Searches the include graph of resolved mechanisms for a domain

    The ``include`` mechanisms of each level are added to ``pending``, which
    is checked for a direct match before any of them is resolved. Each
    include is then resolved and searched in turn, and the search of the
    nested level continues with the includes that are still pending at this
    level.

    Args:
        context (SPFContext): The state of the running check
        mechanisms (list): Mechanisms returned by
                           :func:`checkspf.policy.resolve_spf`
        domain (str): The domain to look for
        pending (list): Includes not yet searched

    Returns:
        SPFResult: ``Pass`` if the domain is reachable through an include,
        otherwise ``Fail``

    Raises:
        :exc:`checkspf.results.SPFError`
    """
    if pending is None:
        pending = []
    pending += [m for m in mechanisms if m.type == "include"]
    if len(pending) == 0:
        return SPFResult(SPFResults.FAIL)

    for mechanism in pending:
        if mechanism.value and mechanism.value.lower() == domain.lower():
            return SPFResult(SPFResults.PASS)

    i = 0
    while i < len(pending):
        mechanism = pending[i]
        if not mechanism.resolved:
            try:
                resolve_mechanism(context, mechanism)
            except SPFNone:
                # A missing record proves nothing either way
                logging.debug(f"Skipping include:{mechanism.value}")
                i += 1
                continue

        pending = pending[i + 1 :]
        mechanism.evaluated = evaluate_include(
            context, mechanism.mechanisms, domain, pending
        )
        if mechanism.evaluated.result == SPFResults.NONE:
            raise SPFPermError(f'Validation for "include:{mechanism.value}" missed')

        if match(mechanism, None, context.options.version):
            return _matched_result(mechanism, SPFResults.PASS)
        i += 1

    return SPFResult(SPFResults.FAIL)
