#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Checks if a host is authorized to send mail for a domain using SPF"""

from __future__ import annotations

from argparse import ArgumentParser

import logging

from checkspf import (
    __version__,
    SPF,
    SPFOptions,
    results_to_json,
    results_to_csv,
    output_to_file,
)
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


def _main():
    """Called when the module in executed"""
    arg_parser = ArgumentParser(description=__doc__)
    arg_parser.add_argument("ip", help="the IP address of the client host")
    arg_parser.add_argument("domain", help="the domain to check")
    arg_parser.add_argument("-s", "--sender", help="the sender email address")
    arg_parser.add_argument(
        "-i",
        "--include",
        help="check that the domain includes this domain instead of "
        "checking the IP address",
    )
    arg_parser.add_argument(
        "--prefetch",
        action="store_true",
        help="resolve every mechanism before evaluating them",
    )
    arg_parser.add_argument(
        "--max-dns",
        type=int,
        default=MAX_DNS_LOOKUPS,
        help=f"the DNS lookup limit (default {MAX_DNS_LOOKUPS})",
    )
    arg_parser.add_argument(
        "--spf-version",
        type=int,
        default=SPF_VERSION,
        help=f"the SPF version to accept (default {SPF_VERSION})",
    )
    arg_parser.add_argument(
        "-f",
        "--format",
        default="json",
        help="specify JSON or CSV screen output format",
    )
    arg_parser.add_argument(
        "-o",
        "--output",
        nargs="+",
        help="one or more file paths to output to "
        "(must end in .json or .csv) "
        "(silences screen output)",
    )
    arg_parser.add_argument(
        "-n", "--nameserver", nargs="+", help="nameservers to query"
    )
    arg_parser.add_argument(
        "-t",
        "--timeout",
        help=f"number of seconds to wait for an answer from DNS (default {DNS_TIMEOUT})",
        type=float,
        default=DNS_TIMEOUT,
    )
    arg_parser.add_argument(
        "--timeout-retries",
        help="number of times to reattempt a query after a timeout "
        f"(default {DNS_TIMEOUT_RETRIES})",
        type=int,
        default=DNS_TIMEOUT_RETRIES,
    )
    arg_parser.add_argument("-v", "--version", action="version", version=__version__)
    arg_parser.add_argument(
        "--debug", action="store_true", help="enable debugging output"
    )

    args = arg_parser.parse_args()

    logging_format = "%(asctime)s - %(levelname)s: %(message)s"
    logging.basicConfig(level=logging.WARNING, format=logging_format)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Debug output enabled")

    try:
        options = SPFOptions.from_value(
            SPFOptions(
                version=args.spf_version, prefetch=args.prefetch, max_dns=args.max_dns
            )
        )
    except ValueError as error:
        arg_parser.error(str(error))

    spf = SPF(
        args.domain,
        args.sender,
        options,
        nameservers=args.nameserver,
        timeout=args.timeout,
        timeout_retries=args.timeout_retries,
    )
    if args.include:
        result = spf.check_include(args.include)
    else:
        result = spf.check(args.ip)

    results = result.to_dict()
    results["ip_address"] = args.ip
    results["domain"] = args.domain
    results["sender"] = spf.sender
    results["required_domain"] = args.include

    if args.output is None:
        if args.format.lower() == "json":
            results = results_to_json(results)
        elif args.format.lower() == "csv":
            results = results_to_csv(results)
        print(results)
    else:
        for path in args.output:
            json_path = path.lower().endswith(".json")
            csv_path = path.lower().endswith(".csv")

            if not json_path and not csv_path:
                logging.error(f"Output path {path} must end in .json or .csv")
            else:
                if json_path:
                    output_to_file(path, results_to_json(results))
                elif csv_path:
                    output_to_file(path, results_to_csv(results))


if __name__ == "__main__":
    _main()
