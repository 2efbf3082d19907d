# -*- coding: utf-8 -*-
"""SPF check results and the typed errors that produce them"""

from __future__ import annotations

from typing import Optional
from collections.abc import Iterable

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


class SPFResults(object):
    """The result names defined by RFC 7208 § 2.6"""

    NONE = "None"
    NEUTRAL = "Neutral"
    PASS = "Pass"
    FAIL = "Fail"
    SOFTFAIL = "SoftFail"
    TEMPERROR = "TempError"
    PERMERROR = "PermError"


RESULT_MESSAGES: dict[str, str] = {
    SPFResults.NONE: "Cannot assert whether or not the client host is authorized",
    SPFResults.NEUTRAL: (
        "Domain owner has explicitly stated that they cannot or do not want to "
        "assert whether or not the IP address is authorized"
    ),
    SPFResults.PASS: "Client is authorized to inject mail with the given identity",
    SPFResults.FAIL: (
        "Client is *not* authorized to use the domain in the given identity"
    ),
    SPFResults.SOFTFAIL: (
        "Domain believes the host is not authorized but is not willing to make "
        "that strong of a statement"
    ),
    SPFResults.TEMPERROR: (
        "Encountered a transient error while performing the check"
    ),
    SPFResults.PERMERROR: (
        "Domain's published records could not be correctly interpreted"
    ),
}

qualifier_results: dict[str, str] = {
    "+": SPFResults.PASS,
    "-": SPFResults.FAIL,
    "~": SPFResults.SOFTFAIL,
    "?": SPFResults.NEUTRAL,
}


class SPFResult(object):
    """
    The immutable outcome of an SPF check

    Attributes:
        result (str): One of the :class:`SPFResults` names
        message (str): A description of the result
        mechanism (str): The type of the mechanism that produced the result,
                         or ``default`` when no mechanism matched
        matched (tuple): The types of all matched mechanisms, from the
                         innermost include to the outermost
        warnings (tuple): Non-fatal problems found in the parsed records
        dns_lookups (int): The number of DNS lookups counted against the limit
    """

    __slots__ = ("result", "message", "mechanism", "matched", "warnings",
                 "dns_lookups")

    def __init__(
        self,
        result: str,
        message: Optional[str] = None,
        *,
        mechanism: str = "default",
        matched: Optional[Iterable[str]] = None,
        warnings: Optional[Iterable[str]] = None,
        dns_lookups: int = 0,
    ):
        if result not in RESULT_MESSAGES:
            raise TypeError(f'Result "{result}" not found')
        if not isinstance(message, str) or len(message) == 0:
            message = RESULT_MESSAGES[result]
        object.__setattr__(self, "result", result)
        object.__setattr__(self, "message", message)
        object.__setattr__(self, "mechanism", mechanism)
        object.__setattr__(self, "matched", tuple(matched or ()))
        object.__setattr__(self, "warnings", tuple(warnings or ()))
        object.__setattr__(self, "dns_lookups", dns_lookups)

    def __setattr__(self, name, value):
        raise AttributeError(f"{self.__class__.__name__} is immutable")

    def __delattr__(self, name):
        raise AttributeError(f"{self.__class__.__name__} is immutable")

    def __eq__(self, other):
        if not isinstance(other, SPFResult):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash((self.result, self.message, self.mechanism, self.matched))

    def __repr__(self):
        return (
            f"SPFResult(result={self.result!r}, message={self.message!r}, "
            f"mechanism={self.mechanism!r}, matched={list(self.matched)!r})"
        )

    def replace(self, **kwargs) -> SPFResult:
        """Returns a copy of the result with the given attributes changed"""
        values = self.to_dict()
        values.update(kwargs)
        return SPFResult(values.pop("result"), values.pop("message"), **values)

    def to_dict(self) -> dict:
        return {
            "result": self.result,
            "message": self.message,
            "mechanism": self.mechanism,
            "matched": list(self.matched),
            "warnings": list(self.warnings),
            "dns_lookups": self.dns_lookups,
        }


class SPFError(Exception):
    """Raised when an SPF check cannot continue"""

    result = SPFResults.PERMERROR

    def __init__(self, msg: str = ""):
        """
        Args:
            msg (str): The error message
        """
        Exception.__init__(self, msg)

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""

    def to_result(self) -> SPFResult:
        """Converts the error into the result it stands for"""
        return SPFResult(self.result, self.message)


class SPFNone(SPFError):
    """Raised when no SPF record applies to a domain"""

    result = SPFResults.NONE


class SPFTempError(SPFError):
    """Raised when a transient DNS error occurs"""

    result = SPFResults.TEMPERROR


class SPFPermError(SPFError):
    """Raised when the published records cannot be correctly interpreted"""

    result = SPFResults.PERMERROR
