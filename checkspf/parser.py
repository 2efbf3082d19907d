# -*- coding: utf-8 -*-
"""SPF record parsing"""

from __future__ import annotations

import logging
import re
from typing import Literal, TypedDict

import pyleri

from checkspf._constants import SYNTAX_ERROR_MARKER
from checkspf.mechanisms import MECHANISM_TYPES, MODIFIER_TYPES, Mechanism

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

SPF_VERSION_TAG_REGEX_STRING = r"v=spf[0-9]+"
SPF_TERM_REGEX_STRING = r"[+\-~?]?[a-zA-Z][a-zA-Z0-9_.\-]*(?:[:=/][!-~]*)?"

MODIFIER_REGEX = re.compile(r"^([+\-~?])?([a-z][a-z0-9_.\-]*)=(.*)$", re.IGNORECASE)
MECHANISM_REGEX = re.compile(r"^([+\-~?])?([a-z][a-z0-9_.\-]*)(.*)$", re.IGNORECASE)
# [":" domain-spec] [ "/" ip4-cidr-length ] [ "//" ip6-cidr-length ]
DUAL_CIDR_REGEX = re.compile(r"^(?::([^/]*))?(?:/(\d+))?(?://(\d+))?$")


class SPFSyntaxError(Exception):
    """Raised when an SPF term has a syntax error"""


class _SPFWarning(Exception):
    """Raised when a non-fatal SPF problem is found"""


class _SPFGrammar(pyleri.Grammar):
    """Defines Pyleri grammar for SPF records"""

    version_tag = pyleri.Regex(SPF_VERSION_TAG_REGEX_STRING)
    term = pyleri.Regex(SPF_TERM_REGEX_STRING)

    START = pyleri.Sequence(version_tag, pyleri.Repeat(term))


class ParserMessage(TypedDict):
    type: Literal["error", "warning"]
    message: str


class ParsedSPFRecord(TypedDict):
    valid: bool
    mechanisms: list[Mechanism]
    messages: list[ParserMessage]


_spf_syntax_checker = _SPFGrammar()


def _error(message: str) -> ParserMessage:
    return {"type": "error", "message": message}


def _warning(message: str) -> ParserMessage:
    return {"type": "warning", "message": message}


def _parse_modifier(term: str, qualifier: str, name: str, value: str):
    if qualifier:
        raise SPFSyntaxError(f'The {name} modifier cannot have a qualifier: "{term}"')
    if name not in MODIFIER_TYPES:
        raise _SPFWarning(f'Unknown modifier "{name}" is ignored')
    if value == "":
        raise SPFSyntaxError(f"The {name} modifier is missing a value")
    return Mechanism(name, value)


def _parse_mechanism(term: str, qualifier: str, name: str, rest: str) -> Mechanism:
    if name not in MECHANISM_TYPES:
        raise SPFSyntaxError(f'Unknown mechanism "{name}" in "{term}"')
    qualifier = qualifier or "+"

    if name == "all":
        if rest != "":
            raise SPFSyntaxError(f'The all mechanism does not take a value: "{term}"')
        return Mechanism(name, qualifier=qualifier)

    if name in ("a", "mx"):
        match = DUAL_CIDR_REGEX.match(rest)
        if match is None:
            raise SPFSyntaxError(f'Invalid {name} mechanism: "{term}"')
        value, cidr4, cidr6 = match.groups()
        if value == "":
            raise SPFSyntaxError(f"{name} must have a value after the colon")
        if cidr4 is not None:
            cidr4 = int(cidr4)
            if cidr4 > 32:
                raise SPFSyntaxError(f"{cidr4} is not a valid ip4-cidr-length")
        if cidr6 is not None:
            cidr6 = int(cidr6)
            if cidr6 > 128:
                raise SPFSyntaxError(f"{cidr6} is not a valid ip6-cidr-length")
        return Mechanism(name, value, qualifier=qualifier, cidr4=cidr4, cidr6=cidr6)

    if name == "ptr" and rest == "":
        return Mechanism(name, qualifier=qualifier)

    # ip4, ip6, include, exists and ptr with a domain
    if not rest.startswith(":") or len(rest) == 1:
        raise SPFSyntaxError(f"{name} must have a value")
    return Mechanism(name, rest[1:], qualifier=qualifier)


def parse_spf_record(
    record: str,
    *,
    syntax_error_marker: str = SYNTAX_ERROR_MARKER,
) -> ParsedSPFRecord:
    """
    Parses the text of an SPF record into mechanisms

    Parsing does not stop at the first problem. Every term with an error is
    reported, in order, so callers can show the first one and have the
    record fixed one problem at a time.

    Args:
        record (str): An SPF record
        syntax_error_marker (str): The marker for pointing out syntax errors

    Returns:
        dict: A ``dict`` with the following keys:
            - ``valid`` - ``False`` when the record as a whole is malformed
            - ``mechanisms`` - A ``list`` of :class:`Mechanism`, starting
              with the ``version`` term
            - ``messages`` - A ``list`` of ``error`` and ``warning`` messages
    """
    logging.debug(f"Parsing the SPF record: {record}")
    record = record.strip()
    messages: list[ParserMessage] = []
    mechanisms: list[Mechanism] = []

    parsed_record = _spf_syntax_checker.parse(record)
    if not parsed_record.is_valid:
        pos = parsed_record.pos
        expecting: list[str] = list(
            map(lambda x: str(x).strip('"'), list(parsed_record.expecting))
        )
        expecting_str = " or ".join(expecting)
        marked_record = record[:pos] + syntax_error_marker + record[pos:]
        messages.append(
            _error(
                f"Expected {expecting_str} at position {pos} "
                f"(marked with {syntax_error_marker}) in: {marked_record}"
            )
        )
        return {"valid": False, "mechanisms": mechanisms, "messages": messages}

    terms = record.split()
    mechanisms.append(Mechanism("version", terms[0][len("v=") :]))

    all_seen = False
    after_all_warned = False
    seen_modifiers = set()
    for term in terms[1:]:
        try:
            modifier = MODIFIER_REGEX.match(term)
            if modifier is not None:
                qualifier, name, value = modifier.groups()
                name = name.lower()
                if name in seen_modifiers:
                    raise SPFSyntaxError(f"Multiple {name} modifiers")
                mechanism = _parse_modifier(term, qualifier, name, value)
                seen_modifiers.add(name)
            else:
                qualifier, name, rest = MECHANISM_REGEX.match(term).groups()
                mechanism = _parse_mechanism(term, qualifier, name.lower(), rest)
                if all_seen and not after_all_warned:
                    after_all_warned = True
                    messages.append(
                        _warning(
                            "Any mechanism after the all mechanism is ignored"
                        )
                    )
                all_seen = all_seen or mechanism.type == "all"
        except SPFSyntaxError as error:
            messages.append(_error(str(error)))
            continue
        except _SPFWarning as warning:
            messages.append(_warning(str(warning)))
            continue
        mechanisms.append(mechanism)

    if all_seen and "redirect" in seen_modifiers:
        messages.append(
            _warning(
                "The redirect modifier is ignored because an all mechanism "
                "is present"
            )
        )

    return {"valid": True, "mechanisms": mechanisms, "messages": messages}
