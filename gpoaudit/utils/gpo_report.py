"""Link report parsing for Group Policy Objects.

Two input shapes are supported:

    Get-GPOReport -ReportType Xml   - <LinksTo> elements with SOMPath/Enabled
    gPLink container attributes     - "[LDAP://cn={guid},...;options]" lists

Both are reduced to a LinkReport: the ordered links of one GPO.
"""
import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
from xml.etree import ElementTree as ET

logger = logging.getLogger(__name__)

# gPLink option bits
GPLINK_DISABLED = 0x1
GPLINK_ENFORCED = 0x2

_GPLINK_RE = re.compile(r"\[LDAP://([^;\]]+);(\d+)\]", re.IGNORECASE)
_XML_DECL_RE = re.compile(r"^\s*<\?xml[^>]*\?>")
_DN_SPLIT_RE = re.compile(r"(?<!\\),")


@dataclass(frozen=True)
class PolicyObject:
    """A GPO as listed by a directory source."""
    id: str
    display_name: str


@dataclass(frozen=True)
class PolicyLink:
    path: str
    enabled: bool
    enforced: bool = False


@dataclass(frozen=True)
class LinkReport:
    """Ordered links of a single GPO. Empty when the GPO is not linked."""
    links: Tuple[PolicyLink, ...] = ()

    @property
    def is_linked(self) -> bool:
        return bool(self.links)

    @property
    def paths(self) -> Tuple[str, ...]:
        return tuple(link.path for link in self.links)

    @property
    def primary(self) -> Optional[PolicyLink]:
        """The representative link: the first one in report order."""
        return self.links[0] if self.links else None


def normalize_guid(value: str) -> str:
    """'{31B2F340-...}' -> '31b2f340-...'"""
    return value.strip().strip("{}").lower()


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if "}" in tag else tag


def _child_text(elem: ET.Element, localname: str) -> Optional[str]:
    for child in elem:
        if _local_name(child.tag).lower() == localname.lower():
            text = (child.text or "").strip()
            return text or None
    return None


def _parse_bool(text: Optional[str]) -> bool:
    return (text or "").strip().lower() == "true"


def parse_gpo_report_xml(xml_text: str) -> LinkReport:
    """Parse a Get-GPOReport XML document into a LinkReport.

    Namespaces are ignored. A report without <LinksTo> elements yields an
    empty (unlinked) report.

    Raises:
        ValueError: If the text is not well-formed XML.
    """
    # The report declares encoding="utf-16" but arrives already decoded.
    text = _XML_DECL_RE.sub("", xml_text, count=1)
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ValueError(f"Malformed GPO report: {e}")

    links: List[PolicyLink] = []
    for elem in root.iter():
        if _local_name(elem.tag) != "LinksTo":
            continue
        path = _child_text(elem, "SOMPath") or _child_text(elem, "SOMName")
        if not path:
            logger.debug("Skipping LinksTo element without SOMPath")
            continue
        links.append(PolicyLink(
            path=path,
            enabled=_parse_bool(_child_text(elem, "Enabled")),
            enforced=_parse_bool(_child_text(elem, "NoOverride")),
        ))
    return LinkReport(tuple(links))


def parse_gplink(value: str) -> List[Tuple[str, int]]:
    """Split a gPLink attribute into (gpo_dn, options) pairs, in order."""
    if not value:
        return []
    return [(dn, int(opts)) for dn, opts in _GPLINK_RE.findall(value)]


def _split_dn(dn: str) -> List[Tuple[str, str]]:
    parts = []
    for rdn in _DN_SPLIT_RE.split(dn):
        key, sep, val = rdn.partition("=")
        if not sep:
            continue
        parts.append((key.strip().upper(), val.strip().replace("\\,", ",")))
    return parts


def domain_to_dn(domain: str) -> str:
    """'corp.contoso.com' -> 'DC=corp,DC=contoso,DC=com'"""
    return ",".join(f"DC={label}" for label in domain.strip(".").split(".") if label)


def dn_to_canonical(dn: str) -> str:
    """'OU=Finance,OU=Depts,DC=contoso,DC=com' -> 'contoso.com/Depts/Finance'"""
    parts = _split_dn(dn)
    domain = ".".join(val for key, val in parts if key == "DC")
    containers = [val for key, val in parts if key != "DC"]
    return "/".join([domain] + list(reversed(containers))) if domain else "/".join(reversed(containers))


def links_from_gplinks(containers: Iterable[Tuple[str, str]], policy_id: str) -> LinkReport:
    """Build a LinkReport for one GPO from (container_dn, gPLink) pairs.

    Containers are taken in the order given; within a gPLink value the
    listed order is kept.
    """
    needle = "cn={" + normalize_guid(policy_id) + "}"
    links: List[PolicyLink] = []
    for container_dn, gplink in containers:
        for gpo_dn, options in parse_gplink(gplink):
            if not gpo_dn.lower().startswith(needle):
                continue
            links.append(PolicyLink(
                path=dn_to_canonical(container_dn),
                enabled=not options & GPLINK_DISABLED,
                enforced=bool(options & GPLINK_ENFORCED),
            ))
    return LinkReport(tuple(links))
