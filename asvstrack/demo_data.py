"""Demo data helpers for asvstrack.

Keeps the ASVS section list and sample requirement templates in one place
so the CLI and the API share the same setup flow.
"""

from __future__ import annotations

import logging

from asvstrack.errors import ValidationError
from asvstrack.models import RequirementTemplate, Section
from asvstrack.registry import RequirementRegistry

logger = logging.getLogger(__name__)

# (name, slug) in ASVS 4.0 chapter order
ASVS_SECTIONS: list[tuple[str, str]] = [
    ("Architecture", "architecture"),
    ("Authentication", "authentication"),
    ("Session Management", "session-management"),
    ("Access Control", "access-control"),
    ("Validation, Sanitization and Encoding", "validation-sanitization-encoding"),
    ("Stored Cryptography", "stored-cryptography"),
    ("Error Handling and Logging", "error-handling-logging"),
    ("Data Protection", "data-protection"),
    ("Communication", "communication"),
    ("Malicious Code", "malicious-code"),
    ("Business Logic", "business-logic"),
    ("Files and Resources", "files-resources"),
    ("API and Web Service", "api-web-service"),
    ("Configuration", "configuration"),
]


def sample_templates() -> list[RequirementTemplate]:
    """Sample requirements for trying out the admin flow."""
    return [
        RequirementTemplate(
            verification_requirement=(
                "Verify that secure architecture design is considered and implemented "
                "consistently across all components and services."
            ),
            asvs_level="L1",
            section_code="1.1.1",
            area="Architecture",
            nist="SA-8",
            cwe="CWE-1008",
        ),
        RequirementTemplate(
            verification_requirement=(
                "Verify that all components are up to date and supported by the vendor "
                "with security patches available."
            ),
            asvs_level="L1",
            section_code="1.1.2",
            area="Architecture",
            nist="SA-22",
            cwe="CWE-1104",
        ),
    ]


async def seed_sections(registry: RequirementRegistry) -> list[Section]:
    """Create the ASVS sections that do not exist yet.

    Returns every ASVS section, created or already present.
    """
    existing = {s.slug: s for s in await registry.list_sections()}
    sections: list[Section] = []
    for order_index, (name, slug) in enumerate(ASVS_SECTIONS, start=1):
        if slug in existing:
            sections.append(existing[slug])
            continue
        try:
            sections.append(await registry.create_section(name, slug, order_index))
        except ValidationError:
            # Created concurrently by another seeder
            logger.warning("Section '%s' already exists, skipping", slug)
            sections.append(await registry.get_section_by_slug(slug))
    return sections
