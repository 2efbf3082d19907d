#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Automated tests"""

import ipaddress
import json
import os
import tempfile
import unittest

import dns.exception
import dns.rdata
import dns.rdataclass
import dns.rdatatype
import dns.resolver
from dns.rdtypes.ANY.TXT import TXT

import checkspf
import checkspf.context
import checkspf.evaluate
import checkspf.gateway
import checkspf.matcher
import checkspf.mechanisms
import checkspf.parser
import checkspf.policy
import checkspf.results
import checkspf.utils
from checkspf import SPF, SPFOptions, SPFResult, SPFResults


class FakeResolver(object):
    """A resolver that answers from a fixed table of records

    Keys are ``(name, record type)`` tuples. Values are a list of records, or
    an exception to raise. TXT records are given as a string or a list of
    character-strings. Names missing from the table do not exist.
    """

    def __init__(self, zone=None):
        self.zone = {}
        self.queries = []
        for (name, record_type), answer in (zone or {}).items():
            self.zone[(name.lower(), record_type.upper())] = answer

    def resolve(self, qname, rdtype, lifetime=None):
        qname = str(qname).lower()
        rdtype = rdtype.upper()
        self.queries.append((qname, rdtype))
        answer = self.zone.get((qname, rdtype))
        if answer is None:
            raise dns.resolver.NXDOMAIN()
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            answer = answer()
        return [_rdata(rdtype, record) for record in answer]

    @property
    def query_count(self):
        return len(self.queries)


def _rdata(rdtype, record):
    if rdtype == "TXT":
        if isinstance(record, str):
            record = [record]
        return TXT(dns.rdataclass.IN, dns.rdatatype.TXT, record)
    return dns.rdata.from_text(
        dns.rdataclass.IN, dns.rdatatype.from_text(rdtype), record
    )


def _check(resolver, ip_address, domain="example.com", **kwargs):
    return checkspf.check_host(ip_address, domain, resolver=resolver, **kwargs)


class CheckHostTest(unittest.TestCase):
    def testInvalidIPAddress(self):
        """Malformed IP addresses return None without any DNS lookup"""
        resolver = FakeResolver()
        for ip_address in ["127.0.0.256", "", "localhost", "2001:db8::g", None]:
            result = _check(resolver, ip_address)
            self.assertEqual(result.result, SPFResults.NONE)
            self.assertEqual(result.message, "Malformed IP for comparison")
        self.assertEqual(resolver.query_count, 0)

    def testInvalidDomain(self):
        """Malformed domains return None without any DNS lookup"""
        resolver = FakeResolver()
        for domain in ["<invalid-hostname>", "", "-example.com", "exa mple.com",
                       "example.invalidtld", None]:
            self.assertEqual(
                checkspf.check("127.0.0.1", domain, resolver=resolver),
                SPFResults.NONE,
            )
        self.assertEqual(resolver.query_count, 0)

    def testTempErrorOnDNSFailure(self):
        """A failing DNS lookup returns TempError"""
        resolver = FakeResolver(
            {("example.com", "TXT"): dns.resolver.NoNameservers()}
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.TEMPERROR)
        self.assertEqual(resolver.query_count, 1)

    def testTempErrorOnTimeout(self):
        """A DNS timeout returns TempError"""
        resolver = FakeResolver(
            {("example.com", "TXT"): dns.exception.Timeout(timeout=2.0001)}
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.TEMPERROR)
        self.assertIn("2.000", result.message)

    def testTimeoutRetries(self):
        """A query is sent again after a timeout when retries are allowed"""
        attempts = []

        def answer():
            attempts.append(1)
            if len(attempts) == 1:
                raise dns.resolver.LifetimeTimeout(timeout=2.0, errors=[])
            return ["v=spf1 ip4:127.0.0.1"]

        resolver = FakeResolver({("example.com", "TXT"): answer})
        result = _check(resolver, "127.0.0.1", timeout_retries=1)
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertEqual(resolver.query_count, 2)
        self.assertEqual(result.dns_lookups, 1)

    def testTempErrorRecursive(self):
        """A DNS failure deep in an include returns TempError"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): [["v=spf1 ", "redirect=_spf.example.com"]],
                ("_spf.example.com", "TXT"): [
                    ["v=spf1 include:_0.example.com", " include:_1.example.com -all"]
                ],
                ("_0.example.com", "TXT"): ["v=spf1 ip4:192.168.0.1 -all"],
                ("_1.example.com", "TXT"): dns.resolver.NoNameservers(),
            }
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.TEMPERROR)
        self.assertEqual(resolver.query_count, 4)

    def testNoneWhenDomainNotFound(self):
        """A domain that does not exist returns None"""
        resolver = FakeResolver()
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.NONE)
        self.assertEqual(resolver.query_count, 1)

    def testNoneWhenNoTXTAnswer(self):
        """A domain without TXT records returns None"""
        resolver = FakeResolver({("example.com", "TXT"): dns.resolver.NoAnswer()})
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.NONE)
        self.assertEqual(resolver.query_count, 1)

    def testNoneWhenNoSPFRecords(self):
        """TXT records that are not SPF records are ignored"""
        for records in [[], ["google-site-verification=abc"], ["v=spf10 -all"],
                        ["v=spf1"]]:
            resolver = FakeResolver({("example.com", "TXT"): records})
            result = _check(resolver, "127.0.0.1")
            self.assertEqual(result.result, SPFResults.NONE)
            self.assertEqual(
                result.message, "Assume that the domain makes no SPF declarations"
            )
            self.assertEqual(resolver.query_count, 1)

    def testPermErrorMultipleRecords(self):
        """More than one SPF record returns PermError"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): [
                    ["v=spf1 ", "redirect=_spf.example.com"],
                    ["v=spf1 ip4:192.168.0.1/32 -all"],
                ]
            }
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.PERMERROR)
        self.assertEqual(resolver.query_count, 1)

    def testPermErrorNonASCII(self):
        """An SPF record that is not US-ASCII returns PermError"""
        resolver = FakeResolver(
            {("example.com", "TXT"): [[b"v=spf1 ", "ip4:127.0.0.1 é".encode()]]}
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.PERMERROR)
        self.assertIn("US-ASCII", result.message)
        self.assertEqual(resolver.query_count, 1)

    def testPermErrorSyntaxErrors(self):
        """Only the first syntax error is reported"""
        resolver = FakeResolver(
            {("example.com", "TXT"): ["v=spf1 ip12:12.12.12.12/24 -none"]}
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.PERMERROR)
        self.assertIn("ip12", result.message)
        self.assertNotIn("none", result.message)
        self.assertEqual(resolver.query_count, 1)

    def testPermErrorMalformedNetwork(self):
        """Malformed ip4 and ip6 values return PermError"""
        for record in ["v=spf1 ip4:78.46.96.236/99 -all",
                       "v=spf1 ip4:relay.example.net -all",
                       "v=spf1 ip6:78.46.96.236 -all",
                       "v=spf1 ip4:1200:0000:AB00:1234:0000:2552:7777:1313 -all"]:
            resolver = FakeResolver({("example.com", "TXT"): [record]})
            result = _check(resolver, "127.0.0.1")
            self.assertEqual(result.result, SPFResults.PERMERROR, record)
            self.assertTrue(result.message.startswith("Malformed"), record)

    def testPermErrorDNSLookupLimit(self):
        """Reaching the DNS lookup limit returns PermError before the next
        lookup is sent"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): [["v=spf1 ", "redirect=_spf.example.com"]],
                ("_spf.example.com", "TXT"): [
                    ["v=spf1 include:_0.example.com", " include:_1.example.com -all"]
                ],
                ("_0.example.com", "TXT"): [
                    "v=spf1 mx:example.com a a:imap.example.com -all"
                ],
                ("example.com", "MX"): ["10 mx.example.com."],
                ("mx.example.com", "A"): ["192.168.0.42"],
                ("_0.example.com", "A"): ["192.168.0.1"],
                ("imap.example.com", "A"): ["192.168.0.7"],
                ("_1.example.com", "TXT"): [
                    [
                        "v=spf1 a a:smtp.example.com",
                        " a:pop.example.com a:srv.example.com ",
                        "a:local.example.com -all",
                    ]
                ],
                ("_1.example.com", "A"): ["192.168.0.2"],
                ("smtp.example.com", "A"): ["192.168.0.8"],
                ("pop.example.com", "A"): ["192.168.0.9"],
                ("srv.example.com", "A"): ["192.168.0.10"],
                ("local.example.com", "A"): ["127.0.0.1"],
            }
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.PERMERROR)
        self.assertEqual(result.message, "Limit of DNS lookups reached")
        self.assertEqual(result.dns_lookups, 10)
        # 10 counted lookups and one for the address of the MX exchange
        self.assertEqual(resolver.query_count, 11)
        self.assertNotIn(("srv.example.com", "A"), resolver.queries)

    def testDNSLookupLimitOption(self):
        """The DNS lookup limit can be lowered"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): ["v=spf1 include:_spf.example.com -all"],
                ("_spf.example.com", "TXT"): ["v=spf1 +all"],
            }
        )
        result = _check(resolver, "127.0.0.1", options={"maxDNS": 1})
        self.assertEqual(result.result, SPFResults.PERMERROR)
        self.assertEqual(resolver.query_count, 1)

        resolver.queries.clear()
        result = _check(resolver, "127.0.0.1", options=SPFOptions(max_dns=2))
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertEqual(resolver.query_count, 2)

    def testPermErrorMXLookupLimit(self):
        """An mx mechanism with as many exchanges as the lookup limit returns
        PermError before any exchange is looked up"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): [["v=spf1 ", "mx +all"]],
                ("example.com", "MX"): [
                    f"{priority} mx{i}.example.com."
                    for i, priority in enumerate(range(10, 110, 10))
                ],
            }
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.PERMERROR)
        self.assertEqual(resolver.query_count, 2)

    def testNeutralWhenNothingMatches(self):
        """Neutral is returned when no mechanism matches"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): ["v=spf1 a"],
                ("example.com", "A"): ["192.168.0.7"],
            }
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.NEUTRAL)
        self.assertEqual(result.mechanism, "default")
        self.assertEqual(result.matched, ())
        self.assertEqual(resolver.query_count, 2)

    def testPassAMechanism(self):
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): ["v=spf1 a"],
                ("example.com", "A"): ["127.0.0.1"],
            }
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertEqual(result.mechanism, "a")
        self.assertEqual(resolver.query_count, 2)

    def testNoneWhenAddressNameNotFound(self):
        """A name without address records stops the check with None"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): ["v=spf1 a:nothing.example.com -all"],
                ("nothing.example.com", "A"): dns.resolver.NoAnswer(),
            }
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.NONE)
        self.assertEqual(result.message, "Domain does not exist")
        self.assertEqual(result.dns_lookups, 2)

        resolver = FakeResolver(
            {("example.com", "TXT"): ["v=spf1 a:gone.example.com ~all"]}
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.NONE)
        self.assertEqual(resolver.query_count, 2)

    def testNoneWhenMXNotFound(self):
        """A domain without MX records stops the check with None"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): ["v=spf1 mx -all"],
                ("example.com", "MX"): dns.resolver.NoAnswer(),
            }
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.NONE)
        self.assertEqual(result.dns_lookups, 2)

        resolver = FakeResolver(
            {
                ("example.com", "TXT"): ["v=spf1 mx -all"],
                ("example.com", "MX"): ["10 mx.example.com."],
            }
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.NONE)
        self.assertEqual(result.dns_lookups, 2)
        self.assertIn(("mx.example.com", "A"), resolver.queries)

    def testPaddedDomain(self):
        """Whitespace around the domain is removed before it is queried"""
        resolver = FakeResolver({("example.com", "TXT"): ["v=spf1 ip4:127.0.0.1"]})
        result = _check(resolver, "127.0.0.1", domain=" example.com ")
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertEqual(resolver.queries, [("example.com", "TXT")])

        result = checkspf.check_include(
            "\texample.com\n", "_spf.example.com", resolver=resolver
        )
        self.assertEqual(result.result, SPFResults.FAIL)
        self.assertEqual(resolver.queries[-1], ("example.com", "TXT"))

    def testAMechanismCIDR(self):
        """An a mechanism with a prefix length matches the whole network"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): ["v=spf1 a/24 -all"],
                ("example.com", "A"): ["192.168.0.1"],
            }
        )
        self.assertEqual(_check(resolver, "192.168.0.200").result, SPFResults.PASS)
        self.assertEqual(_check(resolver, "192.168.1.1").result, SPFResults.FAIL)

    def testIPv6ClientUsesAAAA(self):
        """a mechanisms are looked up with AAAA queries for IPv6 clients"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): ["v=spf1 a -all"],
                ("example.com", "AAAA"): ["2001:db8::1"],
            }
        )
        result = _check(resolver, "2001:DB8:0::1")
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertIn(("example.com", "AAAA"), resolver.queries)

    def testPassMXMechanism(self):
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): ["v=spf1 mx"],
                ("example.com", "MX"): ["10 mx.example.com."],
                ("mx.example.com", "A"): ["127.0.0.1"],
            }
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertEqual(result.mechanism, "mx")
        self.assertEqual(result.dns_lookups, 2)
        self.assertEqual(resolver.query_count, 3)

    def testPassIP4Mechanism(self):
        resolver = FakeResolver({("example.com", "TXT"): ["v=spf1 ip4:127.0.0.1"]})
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertEqual(result.mechanism, "ip4")
        self.assertEqual(result.matched, ("ip4",))
        self.assertEqual(resolver.query_count, 1)

    def testPassIP6Mechanism(self):
        resolver = FakeResolver({("example.com", "TXT"): ["v=spf1 ip6:2001:DB8::CB01"]})
        result = _check(resolver, "2001:DB8::CB01")
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertEqual(resolver.query_count, 1)

    def testIPMechanismWithoutPrefixIsExactHost(self):
        """ip4 and ip6 without a prefix length only match a single host"""
        resolver = FakeResolver(
            {("example.com", "TXT"): ["v=spf1 ip4:192.168.0.1 ip6:2001:db8::1 -all"]}
        )
        self.assertEqual(_check(resolver, "192.168.0.1").result, SPFResults.PASS)
        self.assertEqual(_check(resolver, "192.168.0.2").result, SPFResults.FAIL)
        self.assertEqual(_check(resolver, "2001:db8::1").result, SPFResults.PASS)
        self.assertEqual(_check(resolver, "2001:db8::2").result, SPFResults.FAIL)

    def testIPMechanismFamilies(self):
        """ip4 mechanisms never match IPv6 clients"""
        resolver = FakeResolver(
            {("example.com", "TXT"): ["v=spf1 ip4:0.0.0.0/0 ~all"]}
        )
        self.assertEqual(_check(resolver, "10.1.2.3").result, SPFResults.PASS)
        self.assertEqual(_check(resolver, "::ffff:10.1.2.3").result,
                         SPFResults.SOFTFAIL)

    def testQualifiers(self):
        """Qualifiers decide the result of a matching mechanism"""
        expected = {
            "": SPFResults.PASS,
            "+": SPFResults.PASS,
            "-": SPFResults.FAIL,
            "~": SPFResults.SOFTFAIL,
            "?": SPFResults.NEUTRAL,
        }
        for qualifier, outcome in expected.items():
            resolver = FakeResolver(
                {("example.com", "TXT"): [f"v=spf1 {qualifier}all"]}
            )
            result = _check(resolver, "127.0.0.1")
            self.assertEqual(result.result, outcome)
            self.assertEqual(result.mechanism, "all")

    def testPassIncludeMechanism(self):
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): ["v=spf1 include:_spf.example.com"],
                ("_spf.example.com", "TXT"): ["v=spf1 +all"],
            }
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertEqual(result.mechanism, "include")
        self.assertEqual(result.matched, ("all", "include"))
        self.assertEqual(resolver.query_count, 2)

    def testNestedIncludeMatchedChain(self):
        """Matched mechanisms are listed from the innermost include out"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): ["v=spf1 ~include:_a.example.com -all"],
                ("_a.example.com", "TXT"): ["v=spf1 include:_b.example.com"],
                ("_b.example.com", "TXT"): ["v=spf1 ip4:127.0.0.0/8"],
            }
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.SOFTFAIL)
        self.assertEqual(result.mechanism, "include")
        self.assertEqual(result.matched, ("ip4", "include", "include"))

    def testIncludeNotPassingDoesNotMatch(self):
        """An include only matches when the included record passes"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): [
                    "v=spf1 include:_spf.example.com ip4:127.0.0.1 -all"
                ],
                ("_spf.example.com", "TXT"): ["v=spf1 -all"],
            }
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertEqual(result.mechanism, "ip4")

    def testIncludeWithoutRecord(self):
        """An include of a domain without an SPF record stops the check"""
        resolver = FakeResolver(
            {("example.com", "TXT"): ["v=spf1 include:_gone.example.com -all"]}
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.NONE)
        self.assertEqual(resolver.query_count, 2)

    def testRedirect(self):
        """redirect is followed when there is no all mechanism"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): [["v=spf1 ip4:10.0.0.1 ",
                                          "redirect=_spf.example.com"]],
                ("_spf.example.com", "TXT"): ["v=spf1 ip4:127.0.0.1 -all"],
            }
        )
        self.assertEqual(_check(resolver, "127.0.0.1").result, SPFResults.PASS)
        self.assertEqual(_check(resolver, "10.0.0.1").result, SPFResults.PASS)
        self.assertEqual(_check(resolver, "10.0.0.2").result, SPFResults.FAIL)

    def testRedirectIgnoredWithAll(self):
        """redirect is never followed when there is an all mechanism"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): [
                    "v=spf1 redirect=_spf.example.com ip4:10.0.0.1 ~all"
                ],
                ("_spf.example.com", "TXT"): ["v=spf1 +all"],
            }
        )
        for options in [None, {"prefetch": True}]:
            resolver.queries.clear()
            result = _check(resolver, "127.0.0.1", options=options)
            self.assertEqual(result.result, SPFResults.SOFTFAIL)
            self.assertEqual(resolver.queries, [("example.com", "TXT")])
            self.assertTrue(any("redirect" in w for w in result.warnings))

    def testMechanismsAfterAllAreIgnored(self):
        """Mechanisms after all are never resolved or matched"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): [
                    "v=spf1 -all a mx include:_spf.example.com ptr"
                ],
            }
        )
        for options in [None, {"prefetch": True}]:
            resolver.queries.clear()
            result = _check(resolver, "127.0.0.1", options=options)
            self.assertEqual(result.result, SPFResults.FAIL)
            self.assertEqual(resolver.query_count, 1)

    def testPrefetch(self):
        """Prefetching resolves every mechanism before evaluating any"""
        zone = {
            ("example.com", "TXT"): [
                "v=spf1 ip4:127.0.0.1 include:_broken.example.com -all"
            ],
            ("_broken.example.com", "TXT"): dns.resolver.NoNameservers(),
        }
        resolver = FakeResolver(zone)
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertEqual(resolver.query_count, 1)

        resolver = FakeResolver(zone)
        result = _check(resolver, "127.0.0.1", options={"prefetch": True})
        self.assertEqual(result.result, SPFResults.TEMPERROR)
        self.assertEqual(resolver.query_count, 2)

    def testPrefetchSameResult(self):
        """Prefetching does not change the order mechanisms are matched in"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): [
                    "v=spf1 a:one.example.com ~mx include:_spf.example.com -all"
                ],
                ("one.example.com", "A"): ["192.168.0.1"],
                ("example.com", "MX"): ["10 mx.example.com."],
                ("mx.example.com", "A"): ["127.0.0.1"],
                ("_spf.example.com", "TXT"): ["v=spf1 +all"],
            }
        )
        lazy = _check(resolver, "127.0.0.1")
        eager = _check(resolver, "127.0.0.1", options={"prefetch": True})
        self.assertEqual(lazy.result, SPFResults.SOFTFAIL)
        self.assertEqual(eager.result, SPFResults.SOFTFAIL)
        self.assertEqual(lazy.dns_lookups, 3)
        self.assertEqual(eager.dns_lookups, 4)

    def testUnsupportedMechanisms(self):
        """ptr and exists mechanisms return PermError when reached"""
        for mechanism in ["ptr", "ptr:example.com", "exists:example.com"]:
            resolver = FakeResolver(
                {("example.com", "TXT"): [f"v=spf1 {mechanism} -all"]}
            )
            result = _check(resolver, "127.0.0.1")
            self.assertEqual(result.result, SPFResults.PERMERROR)
            self.assertIn("not supported", result.message)

    def testMacrosAreNotExpanded(self):
        resolver = FakeResolver(
            {("example.com", "TXT"): ["v=spf1 include:%{ir}.spf.example.com -all"]}
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.PERMERROR)
        self.assertEqual(resolver.query_count, 1)

    def testWarnings(self):
        """Parser warnings are returned with the result"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): [
                    "v=spf1 ip4:127.0.0.1 foo=bar exp=explain.example.com -all"
                ]
            }
        )
        result = _check(resolver, "127.0.0.1")
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertEqual(len(result.warnings), 2)
        self.assertTrue(result.warnings[0].startswith("example.com: "))

    def testIdempotence(self):
        """Repeated checks with the same records give the same result"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): [
                    "v=spf1 a include:_spf.example.com ~all"
                ],
                ("example.com", "A"): ["192.168.0.1"],
                ("_spf.example.com", "TXT"): ["v=spf1 ip4:127.0.0.0/8 -all"],
            }
        )
        spf = SPF("example.com", resolver=resolver)
        first = spf.check("127.0.0.1")
        second = spf.check("127.0.0.1")
        self.assertEqual(first, second)
        self.assertEqual(first.dns_lookups, 3)
        self.assertEqual(resolver.query_count, 6)

    def testUppercaseDomainAndMechanisms(self):
        resolver = FakeResolver(
            {("example.com", "TXT"): ["v=spf1 IP4:127.0.0.1 -ALL"]}
        )
        result = checkspf.check_host("127.0.0.1", "EXAMPLE.com", resolver=resolver)
        self.assertEqual(result.result, SPFResults.PASS)

    def testCheckReturnsResultName(self):
        resolver = FakeResolver({("example.com", "TXT"): ["v=spf1 -all"]})
        self.assertEqual(
            checkspf.check("127.0.0.1", "example.com", resolver=resolver),
            "Fail",
        )


class CheckIncludeTest(unittest.TestCase):
    def setUp(self):
        self.resolver = FakeResolver(
            {
                ("example.com", "TXT"): ["v=spf1 include:_spf1.example.com"],
                ("_spf1.example.com", "TXT"): ["v=spf1 include:_spf2.example.com"],
                ("_spf2.example.com", "TXT"): ["v=spf1 ip4:127.0.0.1"],
            }
        )
        self.spf = SPF("example.com", resolver=self.resolver)

    def testDirectInclude(self):
        result = self.spf.check_include("_spf1.example.com")
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertEqual(self.resolver.query_count, 1)

    def testNestedInclude(self):
        result = self.spf.check_include("_SPF2.example.com")
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertEqual(result.matched, ("include",))
        self.assertEqual(self.resolver.query_count, 2)

    def testMissingInclude(self):
        result = self.spf.check_include("_spf3.example.com")
        self.assertEqual(result.result, SPFResults.FAIL)
        self.assertEqual(self.resolver.query_count, 3)

    def testFreshLookupCountForEachCheck(self):
        first = self.spf.check_include("_spf2.example.com")
        second = self.spf.check_include("_spf2.example.com")
        self.assertEqual(first.dns_lookups, 2)
        self.assertEqual(second.dns_lookups, 2)

    def testNoIncludes(self):
        resolver = FakeResolver({("example.com", "TXT"): ["v=spf1 mx -all"]})
        result = checkspf.check_include(
            "example.com", "_spf.example.com", resolver=resolver
        )
        self.assertEqual(result.result, SPFResults.FAIL)
        self.assertEqual(resolver.query_count, 1)

    def testSkipsIncludesWithoutRecords(self):
        """Includes without an SPF record are skipped"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): [
                    "v=spf1 include:_gone.example.com include:_spf.example.com -all"
                ],
                ("_spf.example.com", "TXT"): [
                    "v=spf1 include:_target.example.com -all"
                ],
            }
        )
        result = checkspf.check_include(
            "example.com", "_target.example.com", resolver=resolver
        )
        self.assertEqual(result.result, SPFResults.PASS)
        self.assertEqual(
            resolver.queries,
            [
                ("example.com", "TXT"),
                ("_gone.example.com", "TXT"),
                ("_spf.example.com", "TXT"),
            ],
        )

    def testSearchOrder(self):
        """Pending includes of a level are searched before going back up"""
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): [
                    "v=spf1 include:_a.example.com include:_b.example.com "
                    "include:_c.example.com -all"
                ],
                ("_a.example.com", "TXT"): ["v=spf1 include:_a1.example.com -all"],
                ("_b.example.com", "TXT"): ["v=spf1 -all"],
                ("_c.example.com", "TXT"): ["v=spf1 -all"],
                ("_a1.example.com", "TXT"): ["v=spf1 -all"],
            }
        )
        result = checkspf.check_include(
            "example.com", "_missing.example.com", resolver=resolver
        )
        self.assertEqual(result.result, SPFResults.FAIL)
        self.assertEqual(
            resolver.queries,
            [
                ("example.com", "TXT"),
                ("_a.example.com", "TXT"),
                ("_b.example.com", "TXT"),
                ("_c.example.com", "TXT"),
                ("_a1.example.com", "TXT"),
            ],
        )

    def testErrorsPropagate(self):
        resolver = FakeResolver(
            {
                ("example.com", "TXT"): ["v=spf1 include:_spf.example.com -all"],
                ("_spf.example.com", "TXT"): dns.resolver.NoNameservers(),
            }
        )
        result = checkspf.check_include(
            "example.com", "_other.example.com", resolver=resolver
        )
        self.assertEqual(result.result, SPFResults.TEMPERROR)

    def testInvalidInput(self):
        resolver = FakeResolver()
        result = checkspf.check_include(
            "<invalid-hostname>", "_spf.example.com", resolver=resolver
        )
        self.assertEqual(result.result, SPFResults.NONE)
        result = checkspf.check_include("example.com", "", resolver=resolver)
        self.assertEqual(result.result, SPFResults.NONE)
        self.assertEqual(resolver.query_count, 0)


class ResultTest(unittest.TestCase):
    def testUnknownResult(self):
        self.assertRaises(TypeError, SPFResult, "Maybe")

    def testDefaultMessage(self):
        result = SPFResult(SPFResults.PASS, "")
        self.assertEqual(
            result.message, checkspf.results.RESULT_MESSAGES[SPFResults.PASS]
        )

    def testImmutable(self):
        result = SPFResult(SPFResults.FAIL)
        with self.assertRaises(AttributeError):
            result.result = SPFResults.PASS
        with self.assertRaises(AttributeError):
            del result.message
        self.assertEqual(result.mechanism, "default")
        self.assertEqual(result.matched, ())

    def testErrorToResult(self):
        result = checkspf.SPFPermError("Bad record").to_result()
        self.assertEqual(result.result, SPFResults.PERMERROR)
        self.assertEqual(result.message, "Bad record")
        result = checkspf.SPFTempError().to_result()
        self.assertEqual(
            result.message, checkspf.results.RESULT_MESSAGES[SPFResults.TEMPERROR]
        )

    def testResultsToJSON(self):
        result = SPFResult(SPFResults.PASS, mechanism="ip4", matched=["ip4"])
        parsed = json.loads(checkspf.results_to_json(result))
        self.assertEqual(parsed["result"], "Pass")
        self.assertEqual(parsed["matched"], ["ip4"])
        parsed = json.loads(checkspf.results_to_json([result, result]))
        self.assertEqual(len(parsed), 2)

    def testResultsToCSV(self):
        result = SPFResult(
            SPFResults.PASS, mechanism="include", matched=["all", "include"]
        )
        lines = checkspf.results_to_csv(result).splitlines()
        self.assertEqual(lines[0].split(",")[4], "result")
        self.assertIn("all|include", lines[1])

    def testOutputToFile(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "results.json")
            checkspf.output_to_file(path, "{}")
            with open(path) as output_file:
                self.assertEqual(output_file.read(), "{}")


class OptionsTest(unittest.TestCase):
    def testDefaults(self):
        options = SPFOptions.from_value(None)
        self.assertEqual(options, SPFOptions(version=1, prefetch=False, max_dns=10))

    def testFromMapping(self):
        options = SPFOptions.from_value({"maxDNS": 3, "prefetch": 1})
        self.assertEqual(options.max_dns, 3)
        self.assertIs(options.prefetch, True)

    def testInvalidOptions(self):
        self.assertRaises(TypeError, SPFOptions.from_value, {"lookups": 3})
        self.assertRaises(TypeError, SPFOptions.from_value, 3)
        self.assertRaises(ValueError, SPFOptions.from_value, {"max_dns": 0})
        self.assertRaises(ValueError, SPFOptions.from_value, {"version": "1"})

    def testInvalidOptionsInstance(self):
        """Options given as an instance are checked the same way as a mapping"""
        self.assertRaises(ValueError, SPFOptions.from_value, SPFOptions(max_dns=0))
        self.assertRaises(ValueError, SPFOptions.from_value, SPFOptions(version=0))
        self.assertRaises(ValueError, SPF, "example.com", options=SPFOptions(max_dns=-1))
        options = SPFOptions.from_value(SPFOptions(prefetch=1, max_dns=5))
        self.assertIs(options.prefetch, True)
        self.assertEqual(options.max_dns, 5)

    def testSender(self):
        self.assertEqual(SPF("example.com").sender, "postmaster@example.com")
        self.assertEqual(
            SPF("example.com", "mail.example.com").sender,
            "postmaster@mail.example.com",
        )
        self.assertEqual(
            SPF("example.com", "user@example.com").sender, "user@example.com"
        )


class GatewayTest(unittest.TestCase):
    def testLimitCheckedBeforeLookup(self):
        resolver = FakeResolver({("example.com", "A"): ["127.0.0.1"]})
        context = checkspf.context.SPFContext({"max_dns": 1}, resolver=resolver)
        self.assertEqual(
            checkspf.gateway.resolve_dns(context, "example.com", "A"), ["127.0.0.1"]
        )
        self.assertRaises(
            checkspf.results.SPFPermError,
            checkspf.gateway.resolve_dns,
            context,
            "example.com",
            "A",
        )
        self.assertEqual(context.dns_lookups, 1)
        self.assertEqual(resolver.query_count, 1)

        # Uncounted lookups are still allowed
        checkspf.gateway.resolve_dns(context, "example.com", "A", count=False)
        self.assertEqual(resolver.query_count, 2)

    def testFailedLookupsAreCounted(self):
        resolver = FakeResolver()
        context = checkspf.context.SPFContext(resolver=resolver)
        self.assertRaises(
            checkspf.results.SPFNone,
            checkspf.gateway.resolve_dns,
            context,
            "example.com",
            "TXT",
        )
        self.assertEqual(context.dns_lookups, 1)

    def testResolveMXOrder(self):
        resolver = FakeResolver(
            {
                ("example.com", "MX"): ["20 mx2.example.com.", "10 mx1.example.com."],
                ("mx1.example.com", "A"): ["192.168.0.1"],
                ("mx2.example.com", "A"): ["192.168.0.2"],
            }
        )
        context = checkspf.context.SPFContext(resolver=resolver)
        exchanges = checkspf.gateway.resolve_mx(context, "example.com", "A")
        self.assertEqual(
            [e.exchange for e in exchanges], ["mx1.example.com", "mx2.example.com"]
        )
        self.assertEqual(exchanges[0].records, ["192.168.0.1"])
        self.assertEqual(context.dns_lookups, 1)


class ParserTest(unittest.TestCase):
    def _messages(self, record, message_type):
        parsed = checkspf.parser.parse_spf_record(record)
        return [m["message"] for m in parsed["messages"] if m["type"] == message_type]

    def testMechanisms(self):
        parsed = checkspf.parser.parse_spf_record(
            "v=spf1 a mx:mail.example.com/24 ip4:192.168.0.0/16 "
            "~include:_spf.example.com ?exists:example.com -all"
        )
        self.assertTrue(parsed["valid"])
        self.assertEqual(parsed["messages"], [])
        mechanisms = parsed["mechanisms"]
        self.assertEqual(
            [m.type for m in mechanisms],
            ["version", "a", "mx", "ip4", "include", "exists", "all"],
        )
        self.assertEqual(mechanisms[0].value, "spf1")
        self.assertIsNone(mechanisms[1].value)
        self.assertEqual(mechanisms[2].value, "mail.example.com")
        self.assertEqual(mechanisms[2].cidr4, 24)
        self.assertEqual(mechanisms[3].value, "192.168.0.0/16")
        self.assertEqual(mechanisms[4].result, SPFResults.SOFTFAIL)
        self.assertEqual(mechanisms[5].result, SPFResults.NEUTRAL)
        self.assertEqual(mechanisms[6].result, SPFResults.FAIL)

    def testDualCIDR(self):
        mechanism = checkspf.parser.parse_spf_record("v=spf1 a//64")["mechanisms"][1]
        self.assertIsNone(mechanism.cidr4)
        self.assertEqual(mechanism.cidr6, 64)
        self.assertEqual(str(mechanism), "a//64")
        self.assertTrue(self._messages("v=spf1 a/33", "error"))
        self.assertTrue(self._messages("v=spf1 mx//129", "error"))

    def testModifiers(self):
        parsed = checkspf.parser.parse_spf_record(
            "v=spf1 redirect=_spf.example.com"
        )
        self.assertEqual(parsed["mechanisms"][1].type, "redirect")
        self.assertEqual(parsed["mechanisms"][1].value, "_spf.example.com")
        self.assertTrue(self._messages("v=spf1 redirect=a.example redirect=b.example",
                                       "error"))
        self.assertTrue(self._messages("v=spf1 -redirect=a.example", "error"))
        self.assertTrue(self._messages("v=spf1 redirect=", "error"))
        self.assertEqual(
            self._messages("v=spf1 foo=bar -all", "warning"),
            ['Unknown modifier "foo" is ignored'],
        )

    def testSyntaxErrors(self):
        for record in ["v=spf1 ip12:12.12.12.12/24",
                       "v=spf1 include",
                       "v=spf1 include:",
                       "v=spf1 all:example.com",
                       "v=spf1 ip4"]:
            self.assertTrue(self._messages(record, "error"), record)

    def testGrammarErrors(self):
        parsed = checkspf.parser.parse_spf_record("v=spf1 a !mx")
        self.assertFalse(parsed["valid"])
        self.assertTrue(parsed["messages"][0]["message"].startswith("Expected"))
        self.assertEqual(parsed["mechanisms"], [])

    def testAfterAllWarning(self):
        self.assertEqual(
            self._messages("v=spf1 -all a mx", "warning"),
            ["Any mechanism after the all mechanism is ignored"],
        )


class MatcherTest(unittest.TestCase):
    def testVersionMismatch(self):
        mechanism = checkspf.mechanisms.Mechanism("version", "spf2")
        self.assertRaises(
            checkspf.results.SPFPermError,
            checkspf.matcher.match,
            mechanism,
            ipaddress.ip_address("127.0.0.1"),
            1,
        )
        self.assertFalse(
            checkspf.matcher.match(
                mechanism, ipaddress.ip_address("127.0.0.1"), 2
            )
        )

    def testIncludeNone(self):
        mechanism = checkspf.mechanisms.Mechanism("include", "_spf.example.com")
        mechanism.evaluated = SPFResult(SPFResults.NONE)
        self.assertRaises(
            checkspf.results.SPFPermError, checkspf.matcher.match, mechanism, None
        )
        mechanism.evaluated = SPFResult(SPFResults.PASS)
        self.assertTrue(checkspf.matcher.match(mechanism, None))

    def testMXMatch(self):
        mechanism = checkspf.mechanisms.Mechanism("mx")
        mechanism.exchanges = [
            checkspf.gateway.MXExchange(10, "mx1.example.com", ["192.168.0.1"]),
            checkspf.gateway.MXExchange(20, "mx2.example.com", ["127.0.0.1"]),
        ]
        self.assertTrue(
            checkspf.matcher.match(mechanism, ipaddress.ip_address("127.0.0.1"))
        )
        self.assertFalse(
            checkspf.matcher.match(mechanism, ipaddress.ip_address("127.0.0.2"))
        )


class UtilsTest(unittest.TestCase):
    def testIsValidDomain(self):
        for domain in ["example.com", "_spf.example.com", "EXAMPLE.co.uk.",
                       "mail-1.example.org"]:
            self.assertTrue(checkspf.utils.is_valid_domain(domain), domain)
        for domain in ["<invalid-hostname>", "example..com", "a" * 64 + ".com",
                       "example.com-", 42]:
            self.assertFalse(checkspf.utils.is_valid_domain(domain), domain)

    def testQueryDNSJoinsTXTStrings(self):
        resolver = FakeResolver(
            {("example.com", "TXT"): [["v=spf1 ", "ip4:127.0.0.1"], "other"]}
        )
        records = checkspf.utils.query_dns("Example.com", "TXT", resolver=resolver)
        self.assertEqual(records, ["v=spf1 ip4:127.0.0.1", "other"])


if __name__ == "__main__":
    unittest.main(verbosity=2)
