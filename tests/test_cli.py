# tests/test_cli.py
"""Tests for the developer CLI."""
import json

from app.lambdas.policy_authorizer.cli import cli

METHOD_ARN = "arn:aws:execute-api:us-east-1:123456789012:abcdef123/test/GET/request"


class TestRender:
    def test_render_allow(self, capsys):
        assert cli(["render", "allow", METHOD_ARN]) == 0

        policy = json.loads(capsys.readouterr().out)
        statement = policy["policyDocument"]["Statement"][0]
        assert statement["Effect"] == "Allow"
        assert statement["Resource"] == ["arn:aws:execute-api:us-east-1:123456789012:abcdef123/test/*/*"]

    def test_render_with_rules(self, tmp_path, capsys):
        rules = tmp_path / "rules.yaml"
        rules.write_text(
            "tokens:\n  writer:\n    principal_id: user:dave\n    rules:\n      - {effect: Allow, verb: POST, path: /pets}\n",
            encoding="utf-8",
        )
        assert cli(["render", "Bearer writer", METHOD_ARN, "--rules", str(rules)]) == 0

        policy = json.loads(capsys.readouterr().out)
        assert policy["principalId"] == "user:dave"
        assert policy["policyDocument"]["Statement"][0]["Resource"] == [
            "arn:aws:execute-api:us-east-1:123456789012:abcdef123/test/POST/pets"
        ]

    def test_render_unauthorized(self, capsys):
        assert cli(["render", "letmein", METHOD_ARN]) == 1
        assert "Unauthorized" in capsys.readouterr().err

    def test_render_bad_rules_file(self, tmp_path, capsys):
        assert cli(["render", "allow", METHOD_ARN, "--rules", str(tmp_path / "missing.yaml")]) == 1
        assert "Cannot load rules" in capsys.readouterr().err


class TestCheckRules:
    def test_valid_file(self, tmp_path, capsys):
        rules = tmp_path / "rules.yaml"
        rules.write_text("tokens:\n  a: {}\n  b: {}\n", encoding="utf-8")
        assert cli(["check-rules", str(rules)]) == 0
        assert "2 token grants" in capsys.readouterr().out

    def test_invalid_file(self, tmp_path, capsys):
        rules = tmp_path / "rules.yaml"
        rules.write_text("tokens:\n  a:\n    rules:\n      - {effect: Perhaps}\n", encoding="utf-8")
        assert cli(["check-rules", str(rules)]) == 1
        assert "Invalid rules file" in capsys.readouterr().err

    def test_bad_context_value(self, tmp_path, capsys):
        rules = tmp_path / "rules.yaml"
        rules.write_text("tokens:\n  a:\n    context: {roles: [admin], tier: }\n", encoding="utf-8")
        assert cli(["check-rules", str(rules)]) == 1
        assert "roles" in capsys.readouterr().err
