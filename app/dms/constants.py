"""
Central constants for the document control application.
"""
from __future__ import annotations

# Document status (fine-grained, shown to reviewers)
STATUS_DRAFT = "Draft"
STATUS_UNDER_REVIEW = "Under Review"
STATUS_PENDING_QA_APPROVAL = "Pending QA Approval"
STATUS_PENDING_RELEASE = "Pending Release"
STATUS_EFFECTIVE = "Effective"
STATUS_SUPERSEDED = "Superseded"
STATUS_ARCHIVED = "Archived"

DOCUMENT_STATUSES = (
    STATUS_DRAFT,
    STATUS_UNDER_REVIEW,
    STATUS_PENDING_QA_APPROVAL,
    STATUS_PENDING_RELEASE,
    STATUS_EFFECTIVE,
    STATUS_SUPERSEDED,
    STATUS_ARCHIVED,
)

# Statuses a workflow stage may declare for itself
WORKFLOW_STATUSES = frozenset(
    {STATUS_DRAFT, STATUS_UNDER_REVIEW, STATUS_PENDING_QA_APPROVAL, STATUS_PENDING_RELEASE}
)

# Lifecycle state (coarse projection of status)
LIFECYCLE_DRAFT = "Draft"
LIFECYCLE_ACTIVE = "Active"
LIFECYCLE_ARCHIVED = "Archived"

FILTER_ALL = "All"

CATEGORIES = (
    "Quality",
    "Manufacturing",
    "Safety",
    "Clinical",
    "Supply Chain",
    "Validation",
    "Laboratory",
    "Training",
)

SECURITY_LEVELS = ("Confidential", "Internal", "Restricted", "Public")

STANDARD_PART_11 = "21 CFR Part 11"
STANDARD_ISO_9001 = "ISO 9001"
STANDARD_ICH_Q7 = "ICH Q7"
STANDARD_GMP = "GMP"

STANDARDS = (STANDARD_PART_11, STANDARD_ISO_9001, STANDARD_ICH_Q7, STANDARD_GMP)

# Change control (version promotion, archive) maps to both
CHANGE_CONTROL_STANDARDS = frozenset({STANDARD_PART_11, STANDARD_ISO_9001})

SYSTEM_ADMINISTRATOR = "System Administrator"

# Compliance pillars shown on the compliance snapshot
FRAMEWORKS = (
    {
        "id": "21cfr11",
        "label": STANDARD_PART_11,
        "controls": ("Electronic Signatures", "Audit Trails", "Access Controls"),
    },
    {
        "id": "iso9001",
        "label": STANDARD_ISO_9001,
        "controls": ("Documented Information", "Change Control", "Training Records"),
    },
    {
        "id": "ichq7",
        "label": STANDARD_ICH_Q7,
        "controls": ("Master Formula", "Production & Control", "Distribution"),
    },
)

DEFAULT_VERSION = "0.1-draft"
DEFAULT_SIGNATURE_RATIONALE = "Reviewed and confirmed."
DEFAULT_TEMPLATE_DESCRIPTION = "Custom workflow created in document control."
DEFAULT_STAGE_INSTRUCTIONS = "Follow SOP to validate controls."
DEFAULT_VERSION_CHANGE_SUMMARY = "Version promoted via document control."
DEFAULT_ARCHIVE_CHANGE_SUMMARY = "Archived per administrator action"
DEFAULT_CONTENT_SUMMARY = "New controlled document created in document control."
