"""Extract security findings from raw model responses."""
import json
import re
import uuid
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from cortex_review.core.logging import get_logger
from cortex_review.models.finding import Finding, Severity
from cortex_review.models.template import AnalysisType

logger = get_logger(__name__)


STRIDE_KEYS = (
    "spoofing",
    "tampering",
    "repudiation",
    "information_disclosure",
    "denial_of_service",
    "elevation_of_privilege",
)

STRIDE_CATEGORIES = (
    "Spoofing",
    "Tampering",
    "Repudiation",
    "Information Disclosure",
    "Denial of Service",
    "Elevation of Privilege",
)

STPA_SEC_CATEGORIES = {
    "unsafe control": "Unsafe Control Action",
    "missing feedback": "Missing Feedback",
    "component failure": "Component Failure",
}

SEVERITY_ALIASES = {
    "critical": Severity.HIGH,
    "high": Severity.HIGH,
    "moderate": Severity.MEDIUM,
    "medium": Severity.MEDIUM,
    "minimal": Severity.LOW,
    "low": Severity.LOW,
    "informational": Severity.LOW,
}

MITIGATION_KEYS = ("recommended_mitigations", "mitigation", "recommendation", "mitigations")

MIN_SECTION_LENGTH = 50
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 500

_FENCED_JSON_START = re.compile(r"^```json\s*\n(.*?)\n```", re.MULTILINE | re.DOTALL)
_FENCED_JSON_ANY = re.compile(r"```json\n?(.*?)\n?```", re.DOTALL)
_NUMBERED_HEADER = re.compile(r"(?:^|\n)###\s*\d+[.)]\s*")
_NUMBERED_ITEM = re.compile(r"(?:^|\n)#{2,3}\s*\d+[.)]\s+")
_ANY_HEADER = re.compile(r"(?:^|\n)#{2,}\s+")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n+")

_TITLE_PATTERNS = (
    re.compile(r"\*\*(.+?)\*\*"),
    re.compile(r"^#+\s*(.+)$", re.MULTILINE),
    re.compile(r"^(?:Threat|Finding|Issue|Risk):\s*(.+)$", re.MULTILINE | re.IGNORECASE),
    re.compile(r"^(?:\d+[.)]\s*)?(.+?)$", re.MULTILINE),
)
_SEVERITY_PATTERNS = (
    re.compile(r"severity[:*\s]*(high|critical|medium|moderate|low|minimal)", re.IGNORECASE),
    re.compile(r"\b(high|critical|medium|moderate|low|minimal)\s+(?:severity|risk|priority)", re.IGNORECASE),
    re.compile(r"(?:risk|threat)\s+level[:*\s]*(high|critical|medium|moderate|low|minimal)", re.IGNORECASE),
)
_CWE = re.compile(r"CWE[-\s]?(\d+)", re.IGNORECASE)
_CONFIDENCE = re.compile(r"confidence[:*\s]*(\d+)%?", re.IGNORECASE)
_CATEGORY = re.compile(r"category[:*\s]*([^\n]+)", re.IGNORECASE)
_MITIGATION_BLOCK = re.compile(
    r"(?:mitigations?|remediation|countermeasures?|recommendations?)[:*\s]*\n(.*?)(?=\n\s*\n|\n(?:severity|category|cwe|confidence)|$)",
    re.IGNORECASE | re.DOTALL,
)
_MITIGATION_INLINE = re.compile(r"(?:mitigation|remediation|fix|solution):[ \t]*([^\n]+)", re.IGNORECASE)
_LIST_ITEM = re.compile(r"^\s*(?:[*\-+•]|\d+[.)])\s+")


def new_finding_id() -> str:
    return f"finding_{uuid.uuid4().hex[:12]}"


def normalize_severity(value: Any) -> Severity:
    """Map free-form severity labels onto high/medium/low (default medium)."""
    if isinstance(value, str):
        return SEVERITY_ALIASES.get(value.strip().lower(), Severity.MEDIUM)
    return Severity.MEDIUM


class FindingExtractor:
    """Turns a model's response text into Finding objects.

    Structured JSON is tried first (fenced ```json block, raw JSON, or a
    fenced block anywhere in the text). If no structured findings are found
    the text is split into markdown sections and each section is parsed
    heuristically.
    """

    def extract_findings(
        self,
        response: str,
        analysis_type: AnalysisType,
        model_source: str,
    ) -> List[Finding]:
        """
        Extract findings from a model response.

        Args:
            response: Raw model output
            analysis_type: Methodology used for the prompt
            model_source: Identifier of the model that produced the output

        Returns:
            Findings with fresh ids, in response order
        """
        if not response or not response.strip():
            return []

        structured = self._parse_structured(response)
        if structured:
            logger.info(
                "findings_extracted",
                model_source=model_source,
                mode="structured",
                count=len(structured),
            )
            return [
                self._build(fields, model_source)
                for fields in structured
            ]

        findings = []
        for section in self._split_sections(response):
            fields = self._parse_section(section, analysis_type)
            if fields is not None:
                findings.append(self._build(fields, model_source))

        logger.info(
            "findings_extracted",
            model_source=model_source,
            mode="text",
            count=len(findings),
        )
        return findings

    # ------------------------------------------------------------------
    # Structured responses
    # ------------------------------------------------------------------
    def _parse_structured(self, response: str) -> List[Dict[str, Any]]:
        candidates = []
        match = _FENCED_JSON_START.search(response)
        if match:
            candidates.append(match.group(1))
        candidates.append(response)
        match = _FENCED_JSON_ANY.search(response)
        if match:
            candidates.append(match.group(1))

        for candidate in candidates:
            try:
                parsed = json.loads(candidate)
            except ValueError:
                continue
            findings = self._from_structured(parsed)
            if findings:
                return findings
        return []

    def _from_structured(self, parsed: Any) -> List[Dict[str, Any]]:
        if isinstance(parsed, list):
            return [self._normalize(item) for item in parsed if isinstance(item, dict)]

        if not isinstance(parsed, dict):
            return []

        if any(key in parsed for key in STRIDE_KEYS):
            findings = []
            for key in STRIDE_KEYS:
                items = parsed.get(key)
                if isinstance(items, list):
                    findings.extend(
                        self._normalize(item, category=key)
                        for item in items
                        if isinstance(item, dict)
                    )
            return findings

        items = parsed.get("findings")
        if isinstance(items, list):
            return [self._normalize(item) for item in items if isinstance(item, dict)]
        return []

    @staticmethod
    def _normalize(item: Dict[str, Any], category: Optional[str] = None) -> Dict[str, Any]:
        mitigations = None
        for key in MITIGATION_KEYS:
            if item.get(key):
                value = item[key]
                mitigations = [str(m) for m in value] if isinstance(value, list) else [str(value)]
                break

        description = item.get("attack_scenario") or item.get("description") or ""
        components = item.get("affected_components")
        if isinstance(components, list) and components:
            description += f"\n\nAffected Components: {', '.join(str(c) for c in components)}"

        if category:
            category = category.upper().replace("_", " ")
        else:
            category = item.get("category") or "General"

        cwe_id = item.get("cwe_id") or item.get("cweId")
        return {
            "title": item.get("vulnerability") or item.get("threat") or item.get("title") or "Untitled Finding",
            "description": description or "No description provided",
            "severity": normalize_severity(item.get("severity")),
            "category": str(category),
            "cwe_id": str(cwe_id) if cwe_id is not None else None,
            "mitigations": mitigations,
            "confidence": _as_confidence(item.get("confidence")),
        }

    # ------------------------------------------------------------------
    # Free-text responses
    # ------------------------------------------------------------------
    def _split_sections(self, response: str) -> List[str]:
        for pattern, minimum in (
            (_NUMBERED_HEADER, 1),
            (_NUMBERED_ITEM, 3),
            (_ANY_HEADER, 3),
        ):
            if len(pattern.findall(response)) >= minimum:
                sections = [
                    part for part in pattern.split(response)
                    if len(part.strip()) > MIN_SECTION_LENGTH
                ]
                if sections:
                    return sections

        paragraphs = [
            p for p in _PARAGRAPH_BREAK.split(response)
            if len(p.strip()) > MIN_SECTION_LENGTH
        ]
        if len(paragraphs) > 1:
            return paragraphs
        return [response]

    def _parse_section(
        self, section: str, analysis_type: AnalysisType
    ) -> Optional[Dict[str, Any]]:
        if len(section.strip()) < 20:
            return None

        title = self._extract_title(section)
        description = self._extract_description(section, title)
        if len(title) < 3 or len(description) < 10:
            logger.debug("finding_section_skipped", title=title[:40])
            return None

        cwe = _CWE.search(section)
        confidence = _CONFIDENCE.search(section)
        return {
            "title": title[:MAX_TITLE_LENGTH],
            "description": description,
            "severity": self._extract_severity(section),
            "category": self._extract_category(section, analysis_type),
            "cwe_id": cwe.group(1) if cwe else None,
            "confidence": _as_confidence(confidence.group(1)) if confidence else None,
            "mitigations": self._extract_mitigations(section) or None,
        }

    @staticmethod
    def _extract_title(section: str) -> str:
        title = ""
        for pattern in _TITLE_PATTERNS:
            match = pattern.search(section.strip())
            if match and match.group(1).strip():
                title = match.group(1).strip()
                break
        return re.sub(r"^[\d.)\-*#\s]+", "", title).strip().strip("*").strip()

    @staticmethod
    def _extract_severity(section: str) -> Severity:
        for pattern in _SEVERITY_PATTERNS:
            match = pattern.search(section)
            if match:
                return normalize_severity(match.group(1))
        return Severity.MEDIUM

    @staticmethod
    def _extract_category(section: str, analysis_type: AnalysisType) -> str:
        lowered = section.lower()
        if analysis_type == AnalysisType.STRIDE:
            for category in STRIDE_CATEGORIES:
                if category.lower() in lowered:
                    return category

        if analysis_type == AnalysisType.STPA_SEC:
            for keyword, category in STPA_SEC_CATEGORIES.items():
                if keyword in lowered:
                    return category

        match = _CATEGORY.search(section)
        if match:
            return match.group(1).strip().strip("*").strip()
        return "General"

    @staticmethod
    def _extract_mitigations(section: str) -> List[str]:
        mitigations: List[str] = []
        for match in _MITIGATION_BLOCK.finditer(section):
            for line in match.group(1).splitlines():
                item = _LIST_ITEM.sub("", line).strip()
                if len(item) > 10:
                    mitigations.append(item)

        for match in _MITIGATION_INLINE.finditer(section):
            item = match.group(1).strip()
            if len(item) > 10:
                mitigations.append(item)

        # Remove duplicates, keep order
        return list(dict.fromkeys(mitigations))

    @staticmethod
    def _extract_description(section: str, title: str) -> str:
        text = section.replace(title, "", 1) if title else section
        text = re.sub(r"\*\*(.*?)\*\*", r"\1", text, count=1)
        text = re.sub(r"severity[:*\s]*(high|critical|medium|moderate|low|minimal)", "", text, flags=re.IGNORECASE)
        text = _CWE.sub("", text)
        text = _CONFIDENCE.sub("", text)
        text = _MITIGATION_BLOCK.sub("", text)

        lines = [line.strip() for line in text.splitlines()]
        description = " ".join(line for line in lines if line and not re.fullmatch(r"[#*\-\s]+", line))
        if len(description) > MAX_DESCRIPTION_LENGTH:
            description = description[: MAX_DESCRIPTION_LENGTH - 3] + "..."
        return description

    @staticmethod
    def _build(fields: Dict[str, Any], model_source: str) -> Finding:
        return Finding(id=new_finding_id(), model_source=model_source, **fields)


def categorize_findings(findings: Iterable[Finding]) -> Dict[str, Dict[str, List[Finding]]]:
    """Group findings by category, severity and model."""
    by_category: Dict[str, List[Finding]] = defaultdict(list)
    by_severity: Dict[str, List[Finding]] = defaultdict(list)
    by_model: Dict[str, List[Finding]] = defaultdict(list)

    for finding in findings:
        by_category[finding.category].append(finding)
        by_severity[finding.severity.value].append(finding)
        by_model[finding.model_source].append(finding)

    return {
        "by_category": dict(by_category),
        "by_severity": dict(by_severity),
        "by_model": dict(by_model),
    }


def _as_confidence(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
