# -*- coding: utf-8 -*-
"""Constant values"""

from __future__ import annotations
import os

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

__version__ = "1.0.0"

SYNTAX_ERROR_MARKER = "➞"
SPF_VERSION = 1
MAX_DNS_LOOKUPS = 10
DNS_TIMEOUT = 2.0
DNS_TIMEOUT_RETRIES = 0
DEFAULT_LOCAL_PART = "postmaster"

env = os.environ

if "SPF_VERSION" in env:
    SPF_VERSION = int(env["SPF_VERSION"])
if "SPF_MAX_DNS_LOOKUPS" in env:
    MAX_DNS_LOOKUPS = int(env["SPF_MAX_DNS_LOOKUPS"])
if "DNS_TIMEOUT" in env:
    DNS_TIMEOUT = float(env["DNS_TIMEOUT"])
if "DNS_TIMEOUT_RETRIES" in env:
    DNS_TIMEOUT_RETRIES = int(env["DNS_TIMEOUT_RETRIES"])
