# -*- coding: utf-8 -*-

"""Checks if hosts are authorized to send mail using SPF records"""

from __future__ import annotations

import json
from csv import DictWriter
from io import StringIO
from typing import Union

import checkspf._constants
from checkspf.context import SPFContext, SPFOptions
from checkspf.results import (
    SPFError,
    SPFNone,
    SPFPermError,
    SPFResult,
    SPFResults,
    SPFTempError,
)
from checkspf.spf import SPF, check, check_host, check_include

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


__version__ = checkspf._constants.__version__

__all__ = [
    "SPF",
    "SPFContext",
    "SPFError",
    "SPFNone",
    "SPFOptions",
    "SPFPermError",
    "SPFResult",
    "SPFResults",
    "SPFTempError",
    "check",
    "check_host",
    "check_include",
    "output_to_file",
    "results_to_csv",
    "results_to_json",
]

CSV_FIELDS = [
    "ip_address",
    "domain",
    "sender",
    "required_domain",
    "result",
    "message",
    "mechanism",
    "matched",
    "dns_lookups",
    "warnings",
]


def _to_dicts(
    results: Union[SPFResult, dict, list[Union[SPFResult, dict]]],
) -> list[dict]:
    if not isinstance(results, list):
        results = [results]
    return [r.to_dict() if isinstance(r, SPFResult) else dict(r) for r in results]


def results_to_json(
    results: Union[SPFResult, dict, list[Union[SPFResult, dict]]],
) -> str:
    """
    Converts a result or list of results to a JSON string

    Args:
        results: An :class:`SPFResult`, a ``dict`` of one, or a list of them

    Returns:
        str: Results in JSON format
    """
    rows = _to_dicts(results)
    if not isinstance(results, list):
        return json.dumps(rows[0], ensure_ascii=False, indent=2)
    return json.dumps(rows, ensure_ascii=False, indent=2)


def results_to_csv(
    results: Union[SPFResult, dict, list[Union[SPFResult, dict]]],
) -> str:
    """
    Converts a result or list of results to CSV

    Args:
        results: An :class:`SPFResult`, a ``dict`` of one, or a list of them

    Returns:
        str: A CSV of results
    """
    output = StringIO(newline="\n")
    writer = DictWriter(output, fieldnames=CSV_FIELDS, extrasaction="ignore")
    writer.writeheader()
    for row in _to_dicts(results):
        row["matched"] = "|".join(row.get("matched", []))
        row["warnings"] = "|".join(row.get("warnings", []))
        writer.writerow(row)
    output.flush()

    return output.getvalue()


def output_to_file(path: str, content: str):
    """
    Write given content to the given path

    Args:
        path (str): A file path
        content (str): JSON or CSV text
    """
    with open(
        path, "w", newline="\n", encoding="utf-8", errors="ignore"
    ) as output_file:
        output_file.write(content)
