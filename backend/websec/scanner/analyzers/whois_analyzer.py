# websec/scanner/analyzers/whois_analyzer.py
"""
WHOIS / Domain Registration Analyzer.

Synthesizes a registration record (registrar, creation / expiration / update
dates, status codes, name servers, privacy, DNSSEC) from the domain's seeded
stream and scores its trustworthiness.

Age bias comes from the archetype classifier: brand-like domains skew old,
test/demo/staging domains skew new, are registered for short terms and
sometimes sit at a registrar with no track record.

Score starts at 50:
    age          +25 >10y, +20 >5y, +15 >2y, +10 >1y, +5 >180d,
                 -25 <30d, -15 <90d
    expiry       -35 <30d, -20 <90d, -10 <180d, +15 >2y, +10 >1y
    status       +3 per protective code, -20 per hold / pending-delete code
    name servers +10 for 3+, +5 for 2, -5 for 1, -15 for none
    registrar    +5 reputable, -5 unknown or suspicious
"""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List

from websec.scanner.archetypes import ArchetypeClassifier
from websec.scanner.base import (
    AnalysisResult,
    BaseAnalyzer,
    Dimension,
    Recommendation,
    clamp_score,
)
from websec.scanner.synth import SeededStream

logger = logging.getLogger(__name__)

CATEGORY = "Domain Registration"

MAX_AGE_YEARS = 20
YEAR = 365

REGISTRARS = [
    "GoDaddy.com, LLC",
    "Namecheap, Inc.",
    "Google LLC",
    "Cloudflare, Inc.",
    "Name.com, Inc.",
    "Network Solutions, LLC",
    "Tucows Domains Inc.",
    "eNom, LLC",
    "Hover",
    "Porkbun LLC",
    "Dynadot LLC",
    "NameSilo, LLC",
]

REPUTABLE_REGISTRARS = {
    "GoDaddy.com, LLC", "Namecheap, Inc.", "Google LLC", "Cloudflare, Inc.",
    "Name.com, Inc.", "Hover", "Porkbun LLC",
}
SUSPICIOUS_REGISTRAR_MARKERS = ("unknown registrar", "private registrar", "domain privacy service")
# Throwaway domains sometimes land at a registrar with no track record.
SHADY_REGISTRARS = [
    "Domain Privacy Service FBO Registrant",
    "Private Registrar LLC",
    "Unknown Registrar",
]
SHADY_REGISTRAR_ODDS = 0.35
PRIVACY_REGISTRARS = {"Namecheap, Inc.", "Hover", "Porkbun LLC"}

STATUS_OPTIONS = [
    ["clientTransferProhibited", "clientUpdateProhibited", "clientDeleteProhibited"],
    ["ok"],
    ["clientTransferProhibited", "serverTransferProhibited"],
    ["clientUpdateProhibited", "serverUpdateProhibited"],
    ["active"],
]
HOLD_STATUS = ["clientHold"]

GOOD_STATUSES = ("ok", "active", "clienttransferprohibited", "clientupdateprohibited",
                 "clientdeleteprohibited")
BAD_STATUSES = ("pendingdelete", "redemptionperiod", "clienthold", "serverhold", "pendingrenew")
LOCK_MARKERS = ("transferprohibited", "deleteprohibited", "updateprohibited")

NAME_SERVER_SETS = {
    "GoDaddy.com, LLC": ["ns1.godaddy.com", "ns2.godaddy.com"],
    "Namecheap, Inc.": ["dns1.registrar-servers.com", "dns2.registrar-servers.com"],
    "Google LLC": ["ns-cloud-e1.googledomains.com", "ns-cloud-e2.googledomains.com",
                   "ns-cloud-e3.googledomains.com"],
    "Cloudflare, Inc.": ["ben.ns.cloudflare.com", "roxy.ns.cloudflare.com"],
    "Name.com, Inc.": ["ns1.name.com", "ns2.name.com", "ns3.name.com"],
}
CUSTOM_DNS = [
    ["ns1.digitalocean.com", "ns2.digitalocean.com", "ns3.digitalocean.com"],
    ["dns1.p08.nsone.net", "dns2.p08.nsone.net", "dns3.p08.nsone.net", "dns4.p08.nsone.net"],
    ["ns1.linode.com", "ns2.linode.com", "ns3.linode.com", "ns4.linode.com", "ns5.linode.com"],
    ["pdns1.ultradns.net", "pdns2.ultradns.net", "pdns3.ultradns.org", "pdns4.ultradns.org"],
]

AGE_CLASSIFIER = ArchetypeClassifier.from_mapping({
    "throwaway": ["test", "demo", "staging"],
    "brand": ["google", "microsoft", "amazon", "facebook", "apple"],
})


class WhoisAnalyzer(BaseAnalyzer):
    """
    Scores a (synthesized) domain registration record.

    Produces:
        - registrar, dates, status codes, name servers, contact block and
          raw WHOIS text in details
        - status: new, expiring or established
    """

    dimension = Dimension.WHOIS
    classifier = AGE_CLASSIFIER

    def analyze(self, target: str) -> AnalysisResult:
        domain = target.lower()
        stream = SeededStream.for_domain(domain)
        now = self.clock()
        archetype = self.classifier.classify(domain)

        record = self._synthesize(domain, stream, archetype, now)
        score = self._score(record)
        age, expiry = record["domainAge"], record["daysUntilExpiry"]

        if age < 90:
            status = "new"
        elif expiry < 90:
            status = "expiring"
        else:
            status = "established"

        return AnalysisResult(
            dimension=self.dimension,
            score=score,
            status=status,
            recommendations=self._recommendations(record),
            details=record,
        )

    def failure_recommendation(self) -> Recommendation:
        return Recommendation(
            category=CATEGORY,
            priority="medium",
            title="Registration data unavailable",
            description="Domain registration information could not be retrieved.",
            action="Verify the domain exists and run the scan again.",
        )

    # -------------------------------------------------------------------
    # Synthesis
    # -------------------------------------------------------------------

    def _synthesize(self, domain: str, stream: SeededStream, archetype, now: datetime) -> Dict[str, Any]:
        registrar = stream.pick(REGISTRARS, 300)
        if archetype == "throwaway" and stream.chance(310, SHADY_REGISTRAR_ODDS):
            registrar = stream.pick(SHADY_REGISTRARS, 311)

        age_factor = stream.float(301)
        if archetype == "brand":
            age_factor = 0.8 + age_factor * 0.2
        elif archetype == "throwaway":
            age_factor *= 0.3
        age_days = max(1, int(age_factor * MAX_AGE_YEARS * YEAR))

        if archetype == "throwaway":
            expiry_days = stream.between(10, 400, 302)
        else:
            expiry_days = stream.between(1, 9, 302) * YEAR

        updated_days = min(age_days, stream.between(0, 730, 303))

        statuses = list(stream.pick(STATUS_OPTIONS, 304))
        if stream.chance(305, 0.03):
            statuses = list(HOLD_STATUS)

        name_servers = list(NAME_SERVER_SETS.get(registrar, [f"ns1.{domain}", f"ns2.{domain}"]))
        if stream.float(306) > 0.7:
            name_servers = list(stream.pick(CUSTOM_DNS, 307))

        privacy_odds = 0.7 if registrar in PRIVACY_REGISTRARS else 0.4
        has_privacy = stream.chance(308, privacy_odds)

        created = now - timedelta(days=age_days)
        expires = now + timedelta(days=expiry_days)
        updated = now - timedelta(days=updated_days)

        record = {
            "registrar": registrar,
            "registrarReputation": self._reputation(registrar),
            "creationDate": created.isoformat(),
            "expirationDate": expires.isoformat(),
            "updatedDate": updated.isoformat(),
            "domainAge": age_days,
            "daysUntilExpiry": expiry_days,
            "status": statuses,
            "nameServers": name_servers,
            "hasPrivacy": has_privacy,
            "hasDNSSEC": stream.float(309) > 0.7,
            "contactInfo": self._contact_info(domain, has_privacy),
        }
        record["rawData"] = self._raw_whois(domain, record, created, expires, updated, now)
        return record

    @staticmethod
    def _reputation(registrar: str) -> str:
        if not registrar:
            return "unknown"
        if registrar in REPUTABLE_REGISTRARS:
            return "reputable"
        if any(m in registrar.lower() for m in SUSPICIOUS_REGISTRAR_MARKERS):
            return "suspicious"
        return "other"

    @staticmethod
    def _contact_info(domain: str, has_privacy: bool) -> Dict[str, str]:
        if has_privacy:
            return {
                "registrant": "REDACTED FOR PRIVACY",
                "admin": "REDACTED FOR PRIVACY",
                "tech": "REDACTED FOR PRIVACY",
                "privacyService": "Domains By Proxy, LLC",
            }
        return {
            "registrant": "Domain Administrator",
            "admin": f"hostmaster@{domain}",
            "tech": f"tech@{domain}",
            "organization": "Private",
        }

    @staticmethod
    def _raw_whois(domain: str, record: Dict[str, Any], created: datetime,
                   expires: datetime, updated: datetime, now: datetime) -> str:
        registry_id = hashlib.md5(domain.encode("utf-8")).hexdigest().upper()
        lines = [
            f"Domain Name: {domain.upper()}",
            f"Registry Domain ID: {registry_id}",
            f"Updated Date: {updated.date().isoformat()}T00:00:00Z",
            f"Creation Date: {created.date().isoformat()}T00:00:00Z",
            f"Registry Expiry Date: {expires.date().isoformat()}T23:59:59Z",
            f"Registrar: {record['registrar']}",
        ]
        lines += [f"Domain Status: {s}" for s in record["status"]]
        lines += [f"Name Server: {ns.upper()}" for ns in record["nameServers"]]
        lines.append(f"DNSSEC: {'signedDelegation' if record['hasDNSSEC'] else 'unsigned'}")
        lines.append(f">>> Last update of WHOIS database: {now.replace(microsecond=0).isoformat()} <<<")
        return "\n".join(lines)

    # -------------------------------------------------------------------
    # Scoring
    # -------------------------------------------------------------------

    @staticmethod
    def _score(record: Dict[str, Any]) -> int:
        score = 50
        age = record["domainAge"]
        expiry = record["daysUntilExpiry"]

        if age > 10 * YEAR:
            score += 25
        elif age > 5 * YEAR:
            score += 20
        elif age > 2 * YEAR:
            score += 15
        elif age > YEAR:
            score += 10
        elif age > 180:
            score += 5
        elif age < 30:
            score -= 25
        elif age < 90:
            score -= 15

        if expiry < 30:
            score -= 35
        elif expiry < 90:
            score -= 20
        elif expiry < 180:
            score -= 10
        elif expiry > 2 * YEAR:
            score += 15
        elif expiry > YEAR:
            score += 10

        for status in record["status"]:
            s = status.lower()
            if any(g in s for g in GOOD_STATUSES):
                score += 3
            if any(b in s for b in BAD_STATUSES):
                score -= 20

        ns_count = len(record["nameServers"])
        if ns_count >= 3:
            score += 10
        elif ns_count >= 2:
            score += 5
        elif ns_count == 1:
            score -= 5
        else:
            score -= 15

        reputation = record["registrarReputation"]
        if reputation == "reputable":
            score += 5
        elif reputation in ("unknown", "suspicious"):
            score -= 5

        return clamp_score(score)

    def _recommendations(self, record: Dict[str, Any]) -> List[Recommendation]:
        recs: List[Recommendation] = []
        age = record["domainAge"]
        expiry = record["daysUntilExpiry"]

        def rec(priority: str, title: str, description: str, action: str):
            recs.append(Recommendation(CATEGORY, priority, title, description, action))

        if age < 30:
            rec("high", "Very new domain",
                f"The domain was registered {age} days ago.",
                "Treat the site with caution and verify its legitimacy before trusting it.")
        elif age < 90:
            rec("medium", "Recently registered domain",
                f"The domain is less than three months old ({age} days).",
                "Verify the site's legitimacy.")

        if expiry < 30:
            rec("critical", "Domain expires imminently",
                f"The registration expires in {expiry} days.",
                "Renew the domain immediately and enable auto-renew.")
        elif expiry < 90:
            rec("high", "Domain expires soon",
                f"The registration expires in {expiry} days.",
                "Schedule renewal now and enable auto-renew.")
        elif expiry < 180:
            rec("medium", "Plan domain renewal",
                f"The registration expires in {expiry} days.",
                "Plan renewal or enable auto-renew.")

        statuses = [s.lower() for s in record["status"]]
        if any(any(b in s for b in BAD_STATUSES) for s in statuses):
            rec("critical", "Domain on hold",
                "The registry status shows a hold or pending-delete state; the domain may stop resolving.",
                "Contact the registrar to resolve the hold.")
        elif not any(any(m in s for m in LOCK_MARKERS) for s in statuses):
            rec("medium", "Enable registrar lock",
                "The domain has no transfer, update or delete lock.",
                "Enable clientTransferProhibited and clientDeleteProhibited at the registrar.")

        if len(record["nameServers"]) < 2:
            rec("high", "Add redundant name servers",
                "Fewer than two name servers are configured, a single point of failure.",
                "Configure at least two name servers on separate networks.")

        if not record["hasDNSSEC"]:
            rec("low", "Enable DNSSEC",
                "DNS responses for this domain are not signed.",
                "Enable DNSSEC at the DNS provider and publish the DS record at the registrar.")

        if record["registrarReputation"] == "suspicious":
            rec("medium", "Unvetted registrar",
                f"The domain is registered through \"{record['registrar']}\", a registrar with no track record.",
                "Move the domain to an established registrar with strong account security.")

        if not record["hasPrivacy"]:
            rec("low", "Enable WHOIS privacy",
                "Registrant contact details are publicly visible.",
                "Enable the registrar's privacy protection service.")

        return recs
