# app/lambdas/policy_authorizer/method_arn.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .auth_policy import PolicyScope


class InvalidArnError(ValueError):
    pass


@dataclass
class MethodArn:
    """
    Parsed API Gateway method (or route) ARN.

    Format: arn:<partition>:execute-api:<region>:<account>:<api>/<stage>/<verb>/<resource...>
    """

    region: str
    account_id: str
    api_id: str
    stage: str
    verb: Optional[str] = None
    resource: Optional[str] = None
    partition: str = "aws"
    service: str = "execute-api"

    @classmethod
    def parse(cls, value: str) -> "MethodArn":
        parts = value.split(":", 5)
        if len(parts) < 6 or parts[0] != "arn":
            raise InvalidArnError(f"Invalid method ARN: {value}")

        path = parts[5].split("/")
        if len(path) < 2:
            raise InvalidArnError(f"Method ARN is missing api id or stage: {value}")

        return cls(
            partition=parts[1],
            service=parts[2],
            region=parts[3],
            account_id=parts[4],
            api_id=path[0],
            stage=path[1],
            verb=path[2] if len(path) > 2 else None,
            resource="/".join(path[3:]) if len(path) > 3 else None,
        )

    def scope(self) -> PolicyScope:
        return PolicyScope(
            account_id=self.account_id,
            region=self.region,
            api_id=self.api_id,
            stage=self.stage,
            partition=self.partition,
        )

    def __str__(self) -> str:
        arn = (
            f"arn:{self.partition}:{self.service}:{self.region}:{self.account_id}:"
            f"{self.api_id}/{self.stage}"
        )
        if self.verb is not None:
            arn += f"/{self.verb}"
            if self.resource is not None:
                arn += f"/{self.resource}"
        return arn
