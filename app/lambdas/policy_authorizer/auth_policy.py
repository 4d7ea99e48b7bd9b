# app/lambdas/policy_authorizer/auth_policy.py
"""
Policy document builder for API Gateway custom authorizers.

Collects allow/deny entries for API methods and renders them into the
document API Gateway expects back from an authorizer:

  {
    "principalId": "...",
    "policyDocument": {"Version": "2012-10-17", "Statement": [...]},
    "context": {...}
  }

Each call adds exactly one statement. Statements are never merged or
reordered; how overlapping Allow/Deny entries are evaluated is up to
API Gateway.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

POLICY_VERSION = "2012-10-17"
EXECUTE_API_INVOKE = "execute-api:Invoke"
DEFAULT_PARTITION = "aws"
SERVICE = "execute-api"
WILDCARD = "*"

CONTEXT_VALUE_TYPES = (str, int, float, bool)


class HttpVerb(Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    ALL = WILDCARD

    def render(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> "HttpVerb":
        """Accept either the member name ("ALL") or its rendering ("*")."""
        if value == WILDCARD:
            return cls.ALL
        try:
            return cls[value.upper()]
        except KeyError:
            raise ValueError(f"Unknown HTTP verb: {value}") from None


class Effect(Enum):
    ALLOW = "Allow"
    DENY = "Deny"

    def render(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> "Effect":
        for member in cls:
            if member.value.lower() == value.lower():
                return member
        raise ValueError(f"Unknown effect: {value}")


@dataclass
class PolicyScope:
    """Region/account/API/stage coordinates of a method ARN."""

    account_id: str
    region: str = WILDCARD
    api_id: str = WILDCARD
    stage: str = WILDCARD
    partition: str = DEFAULT_PARTITION

    def resource_arn(self, verb: HttpVerb, resource_path: str) -> str:
        path = resource_path.lstrip("/")
        return (
            f"arn:{self.partition}:{SERVICE}:{self.region}:{self.account_id}:"
            f"{self.api_id}/{self.stage}/{verb.render()}/{path}"
        )


class AuthPolicyBuilder:
    """Accumulates statements for one principal and renders the result.

    Scope attributes (``region``, ``account_id``, ``api_id``, ``stage``) can
    be changed at any time; a statement keeps the scope it was added with.
    """

    def __init__(
        self,
        principal_id: str,
        account_id: str,
        region: Optional[str] = None,
        api_id: Optional[str] = None,
        stage: Optional[str] = None,
        partition: str = DEFAULT_PARTITION,
    ):
        if not principal_id:
            raise ValueError("principal_id must be a non-empty string")
        self.principal_id = principal_id
        self.account_id = account_id
        self.region = WILDCARD if region is None else region
        self.api_id = WILDCARD if api_id is None else api_id
        self.stage = WILDCARD if stage is None else stage
        self.partition = partition
        self.version = POLICY_VERSION
        self._statements: List[Dict[str, Any]] = []
        self._context: Optional[Dict[str, Any]] = None

    @classmethod
    def from_method_arn(cls, principal_id: str, method_arn) -> "AuthPolicyBuilder":
        scope = method_arn.scope()
        return cls(
            principal_id,
            scope.account_id,
            region=scope.region,
            api_id=scope.api_id,
            stage=scope.stage,
            partition=scope.partition,
        )

    @property
    def scope(self) -> PolicyScope:
        return PolicyScope(
            self.account_id, self.region, self.api_id, self.stage, self.partition
        )

    @property
    def statements(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._statements)

    def add_statement(
        self,
        effect: Effect,
        verb: HttpVerb,
        resource_path: str,
        conditions: Optional[Dict[str, Any]] = None,
    ) -> "AuthPolicyBuilder":
        statement = {
            "Effect": effect.render(),
            "Action": [EXECUTE_API_INVOKE],
            "Resource": [self.scope.resource_arn(verb, resource_path)],
        }
        if conditions:
            statement["Condition"] = copy.deepcopy(conditions)
        self._statements.append(statement)
        return self

    def add_custom_statement(self, statement: Dict[str, Any]) -> "AuthPolicyBuilder":
        """Append a hand-written statement as-is."""
        self._statements.append(copy.deepcopy(statement))
        return self

    def allow_all_methods(self) -> "AuthPolicyBuilder":
        return self.add_statement(Effect.ALLOW, HttpVerb.ALL, WILDCARD)

    def deny_all_methods(self) -> "AuthPolicyBuilder":
        return self.add_statement(Effect.DENY, HttpVerb.ALL, WILDCARD)

    def allow_method(self, verb: HttpVerb, resource_path: str) -> "AuthPolicyBuilder":
        return self.add_statement(Effect.ALLOW, verb, resource_path)

    def deny_method(self, verb: HttpVerb, resource_path: str) -> "AuthPolicyBuilder":
        return self.add_statement(Effect.DENY, verb, resource_path)

    def allow_method_with_conditions(
        self, verb: HttpVerb, resource_path: str, conditions: Dict[str, Any]
    ) -> "AuthPolicyBuilder":
        return self.add_statement(Effect.ALLOW, verb, resource_path, conditions)

    def deny_method_with_conditions(
        self, verb: HttpVerb, resource_path: str, conditions: Dict[str, Any]
    ) -> "AuthPolicyBuilder":
        return self.add_statement(Effect.DENY, verb, resource_path, conditions)

    def set_context(self, context: Dict[str, Any]) -> "AuthPolicyBuilder":
        """Attach values exposed to integrations as $context.authorizer.<key>."""
        for key, value in context.items():
            if not isinstance(key, str):
                raise TypeError(f"Context keys must be strings, got {type(key).__name__}")
            if not isinstance(value, CONTEXT_VALUE_TYPES):
                raise TypeError(
                    f"Context value for {key!r} must be a string, number or boolean, "
                    f"got {type(value).__name__}"
                )
        self._context = dict(context)
        return self

    def build(self) -> Dict[str, Any]:
        result = {
            "principalId": self.principal_id,
            "policyDocument": {
                "Version": self.version,
                "Statement": copy.deepcopy(self._statements),
            },
        }
        if self._context is not None:
            result["context"] = dict(self._context)
        return result
