# app/lambdas/policy_authorizer/handler.py
import json
import logging
import os

from .auth_policy import AuthPolicyBuilder
from .method_arn import InvalidArnError, MethodArn
from .rules import TokenValidator, UnauthorizedError, load_rules, resolve_principal

logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

RULES_PATH = os.environ.get("AUTHORIZER_RULES_PATH")

_validator = None


def get_validator():
    """Load the token rules once per container."""
    global _validator
    if _validator is None:
        _validator = TokenValidator(load_rules(RULES_PATH) if RULES_PATH else None)
    return _validator


def _redacted(event):
    event = dict(event)
    if event.get("authorizationToken"):
        event["authorizationToken"] = "***"
    # identitySource holds the raw values of the identity headers (payload 2.0)
    if event.get("identitySource"):
        event["identitySource"] = _mask(event["identitySource"])
    for key in ("headers", "multiValueHeaders"):
        headers = event.get(key)
        if headers:
            event[key] = {
                k: (_mask(v) if k.lower() == "authorization" else v) for k, v in headers.items()
            }
    return event


def _mask(value):
    if isinstance(value, list):
        return ["***" for _ in value]
    return "***"


def extract_token(event):
    """TOKEN authorizers send authorizationToken, REQUEST authorizers send headers."""
    token = event.get("authorizationToken")
    if token:
        return token
    headers = event.get("headers") or {}
    for key, value in headers.items():
        if key.lower() == "authorization":
            return value
    return None


def extract_arn(event):
    # Payload 1.0 / REST APIs use methodArn, HTTP API payload 2.0 uses routeArn
    return event.get("methodArn") or event.get("routeArn")


def build_policy(grant, principal_id, method_arn):
    builder = AuthPolicyBuilder.from_method_arn(principal_id, method_arn)
    if grant.rules:
        for rule in grant.rules:
            rule.apply(builder)
    else:
        builder.deny_all_methods()
    if grant.context:
        builder.set_context(grant.context)
    return builder.build()


def authorize(event, validator):
    """
    Invalid or missing token -> Unauthorized (401).
    Valid token -> policy document; a Deny policy makes the gateway answer 403.
    """
    try:
        grant = validator.validate(extract_token(event))
        principal_id = resolve_principal(grant)

        raw_arn = extract_arn(event)
        if not raw_arn:
            logger.error("Event carries neither methodArn nor routeArn")
            raise UnauthorizedError()
        method_arn = MethodArn.parse(raw_arn)

        policy = build_policy(grant, principal_id, method_arn)
    except UnauthorizedError:
        logger.info("Rejecting request: unauthorized")
        raise
    except InvalidArnError as e:
        logger.error("Rejecting request: %s", e)
        raise UnauthorizedError() from e
    except Exception:
        logger.exception("Authorizer failed")
        raise UnauthorizedError()

    for statement in policy["policyDocument"]["Statement"]:
        logger.info(
            "Policy statement applied: Effect=%s Resource=%s",
            statement.get("Effect"),
            statement.get("Resource"),
        )
    return policy


def lambda_handler(event, context):
    """API Gateway custom authorizer entry point."""
    logger.info("Authorizer event: %s", json.dumps(_redacted(event)))
    return authorize(event, get_validator())
