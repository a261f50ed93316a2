"""
Email gate evaluation.

Rejections for domain and allowlist mismatches share one generic message so
probing visitors cannot learn which restriction a page uses.
"""
import re
from dataclasses import dataclass
from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

INVALID_EMAIL_MESSAGE = "Please enter a valid email address"
ACCESS_RESTRICTED_MESSAGE = "Access restricted"


class AnyGatePolicy(BaseModel):
    kind: Literal["any"] = "any"


class DomainGatePolicy(BaseModel):
    kind: Literal["domain"] = "domain"
    domain: str = Field(..., min_length=1)


class AllowlistGatePolicy(BaseModel):
    kind: Literal["allowlist"] = "allowlist"
    allowlist: List[str] = Field(default_factory=list)


EmailGatePolicy = Annotated[
    Union[AnyGatePolicy, DomainGatePolicy, AllowlistGatePolicy],
    Field(discriminator="kind"),
]

email_gate_policy_adapter = TypeAdapter(EmailGatePolicy)


@dataclass(frozen=True)
class GateDecision:
    admitted: bool
    error: Optional[str] = None


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.fullmatch(email) is not None


def policy_from_page(page) -> EmailGatePolicy:
    """
    Build the gate policy stored on a page.

    A disabled gate, or a restricted type whose data is missing, behaves as ``any``.
    """
    if not page.email_gate_enabled or page.email_gate_type is None:
        return AnyGatePolicy()

    kind = getattr(page.email_gate_type, "value", page.email_gate_type)
    if kind == "domain" and page.email_gate_domain:
        stored = {"kind": "domain", "domain": page.email_gate_domain}
    elif kind == "allowlist" and page.email_gate_allowlist is not None:
        stored = {"kind": "allowlist", "allowlist": page.email_gate_allowlist}
    else:
        stored = {"kind": "any"}
    return email_gate_policy_adapter.validate_python(stored)


def evaluate_email_gate(email: str, policy: EmailGatePolicy) -> GateDecision:
    """Decide whether an email address may pass a page's gate."""
    email = email or ""
    if not is_valid_email(email):
        return GateDecision(admitted=False, error=INVALID_EMAIL_MESSAGE)

    if isinstance(policy, DomainGatePolicy):
        email_domain = email.split("@", 1)[1]
        if email_domain.lower() != policy.domain.lower():
            return GateDecision(admitted=False, error=ACCESS_RESTRICTED_MESSAGE)

    elif isinstance(policy, AllowlistGatePolicy):
        lowered = email.lower()
        if not any(allowed.lower() == lowered for allowed in policy.allowlist):
            return GateDecision(admitted=False, error=ACCESS_RESTRICTED_MESSAGE)

    return GateDecision(admitted=True)


def admit(email: str, policy: EmailGatePolicy) -> bool:
    return evaluate_email_gate(email, policy).admitted
