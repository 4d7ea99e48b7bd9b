# app/lambdas/policy_authorizer/rules.py
"""
Token validation and principal resolution.

Bearer tokens are mapped to grants by a rules file (YAML). A grant names the
principal, the methods the token may or may not call, and optional context
passed through to the backend integration. Swap ``TokenValidator`` for a real
identity check (JWT verification, introspection, ...) when wiring this into a
production API.

Example rules file:

  tokens:
    reader-token:
      principal_id: user:alice
      context: {tier: gold}
      rules:
        - {effect: Allow, verb: GET, path: /pets/*}
        - {effect: Deny, verb: ALL, path: /admin/*}
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from .auth_policy import CONTEXT_VALUE_TYPES, WILDCARD, AuthPolicyBuilder, Effect, HttpVerb

logger = logging.getLogger(__name__)

UNAUTHORIZED = "Unauthorized"


class UnauthorizedError(Exception):
    """Raised to make API Gateway answer 401. The message must stay "Unauthorized"."""

    def __init__(self):
        super().__init__(UNAUTHORIZED)


class RulesConfigError(ValueError):
    pass


@dataclass
class PolicyRule:
    effect: Effect
    verb: HttpVerb = HttpVerb.ALL
    path: str = WILDCARD
    conditions: Optional[Dict[str, Any]] = None

    def apply(self, builder: AuthPolicyBuilder) -> None:
        builder.add_statement(self.effect, self.verb, self.path, self.conditions)


@dataclass
class TokenGrant:
    principal_id: Optional[str] = None
    rules: List[PolicyRule] = field(default_factory=list)
    context: Dict[str, Any] = field(default_factory=dict)


# Demo behaviour: "allow" gets everything, "deny" gets a 403, anything else a 401.
DEFAULT_RULES: Dict[str, TokenGrant] = {
    "allow": TokenGrant(rules=[PolicyRule(Effect.ALLOW)]),
    "deny": TokenGrant(rules=[PolicyRule(Effect.DENY)]),
}


def _parse_rule(token: str, raw: Any) -> PolicyRule:
    if not isinstance(raw, dict):
        raise RulesConfigError(f"Rule for token {token!r} must be a mapping")
    try:
        effect = Effect.parse(str(raw["effect"]))
        verb = HttpVerb.parse(str(raw.get("verb", "ALL")))
    except KeyError:
        raise RulesConfigError(f"Rule for token {token!r} has no effect") from None
    except ValueError as e:
        raise RulesConfigError(f"Bad rule for token {token!r}: {e}") from e

    conditions = raw.get("conditions")
    if conditions is not None and not isinstance(conditions, dict):
        raise RulesConfigError(f"Conditions for token {token!r} must be a mapping")
    return PolicyRule(effect, verb, str(raw.get("path", WILDCARD)), conditions)


def _parse_context(token: str, raw: Any) -> Dict[str, Any]:
    context = raw or {}
    if not isinstance(context, dict):
        raise RulesConfigError(f"Context for token {token!r} must be a mapping")
    for key, value in context.items():
        if not isinstance(key, str):
            raise RulesConfigError(f"Context key {key!r} for token {token!r} must be a string")
        if not isinstance(value, CONTEXT_VALUE_TYPES):
            raise RulesConfigError(
                f"Context value {key!r} for token {token!r} must be a string, number or boolean"
            )
    return context


def parse_rules(data: Any) -> Dict[str, TokenGrant]:
    if not isinstance(data, dict) or not isinstance(data.get("tokens"), dict):
        raise RulesConfigError("Rules file must contain a 'tokens' mapping")

    grants = {}
    for token, entry in data["tokens"].items():
        # Unquoted yes/no/on/off or numbers load as non-strings
        if not isinstance(token, str):
            raise RulesConfigError(f"Token {token!r} must be a string; quote it in the rules file")
        entry = entry or {}
        if not isinstance(entry, dict):
            raise RulesConfigError(f"Entry for token {token!r} must be a mapping")
        principal_id = entry.get("principal_id")
        grants[token] = TokenGrant(
            principal_id=str(principal_id) if principal_id is not None else None,
            rules=[_parse_rule(token, r) for r in entry.get("rules") or []],
            context=_parse_context(token, entry.get("context")),
        )
    return grants


def load_rules(path: str) -> Dict[str, TokenGrant]:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise RulesConfigError(f"Cannot parse rules file {path}: {e}") from e
    grants = parse_rules(data)
    logger.info("Loaded %d token grants from %s", len(grants), path)
    return grants


def strip_scheme(token: str) -> str:
    scheme, _, value = token.strip().partition(" ")
    if value and scheme.lower() == "bearer":
        return value.strip()
    return token.strip()


class TokenValidator:
    def __init__(self, grants: Optional[Dict[str, TokenGrant]] = None):
        self.grants = DEFAULT_RULES if grants is None else grants

    def validate(self, token: Optional[str]) -> TokenGrant:
        if not token:
            raise UnauthorizedError()
        grant = self.grants.get(strip_scheme(token))
        if grant is None:
            raise UnauthorizedError()
        return grant


def resolve_principal(grant: TokenGrant) -> str:
    if grant.principal_id:
        return grant.principal_id
    return str(uuid.uuid4())
