# app/lambdas/policy_authorizer/cli.py
"""
Developer CLI for the policy authorizer.

  # Render the policy a token would receive for a method ARN
  python -m app.lambdas.policy_authorizer.cli render allow \
      arn:aws:execute-api:us-east-1:123456789012:abcdef123/test/GET/pets

  # Same, with a rules file
  python -m app.lambdas.policy_authorizer.cli render reader-token <arn> --rules rules.yaml

  # Validate a rules file
  python -m app.lambdas.policy_authorizer.cli check-rules rules.yaml
"""
import argparse
import json
import sys

from . import handler
from .rules import RulesConfigError, TokenValidator, UnauthorizedError, load_rules


def render(token, method_arn, rules_path=None):
    validator = TokenValidator(load_rules(rules_path) if rules_path else None)
    event = {"type": "TOKEN", "authorizationToken": token, "methodArn": method_arn}
    return handler.authorize(event, validator)


def cli(argv=None):
    parser = argparse.ArgumentParser(description="API Gateway policy authorizer CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    r = sub.add_parser("render", help="Print the authorizer response for a token and method ARN")
    r.add_argument("token", help="Bearer token (with or without the 'Bearer ' scheme)")
    r.add_argument("method_arn", help="API Gateway method ARN")
    r.add_argument("--rules", help="Path to a YAML rules file (default: built-in allow/deny tokens)")

    c = sub.add_parser("check-rules", help="Validate a YAML rules file")
    c.add_argument("path", help="Path to the rules file")

    args = parser.parse_args(argv)

    if args.command == "render":
        try:
            policy = render(args.token, args.method_arn, args.rules)
        except (RulesConfigError, OSError) as e:
            print(f"[✗] Cannot load rules: {e}", file=sys.stderr)
            return 1
        except UnauthorizedError as e:
            print(f"[✗] {e}", file=sys.stderr)
            return 1
        print(json.dumps(policy, indent=2))

    elif args.command == "check-rules":
        try:
            grants = load_rules(args.path)
        except (RulesConfigError, OSError) as e:
            print(f"[✗] Invalid rules file: {e}", file=sys.stderr)
            return 1
        print(f"[✓] {len(grants)} token grants defined in {args.path}")

    return 0


if __name__ == "__main__":
    sys.exit(cli())
