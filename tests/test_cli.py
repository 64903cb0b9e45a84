import json
from pathlib import Path
import textwrap

import pytest
from typer.testing import CliRunner

from apisync.cli import app
from apisync.config.settings import CONFIG_FILE_ENV
from apisync.logging_setup import LOG_LEVEL_ENV

runner = CliRunner()


def write(p: Path, s: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(textwrap.dedent(s), encoding="utf-8")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (CONFIG_FILE_ENV, "GITHUB_TOKEN", LOG_LEVEL_ENV):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def workspace(tmp_path: Path) -> dict:
    specs = tmp_path / "specs"
    doc = {
        "paths": {
            "/2010-04-01/Accounts/{AccountSid}/Messages.json": {
                "parameters": [{"name": "AccountSid", "in": "path", "required": True}],
                "post": {
                    "operationId": "CreateMessage",
                    "requestBody": {
                        "content": {
                            "application/x-www-form-urlencoded": {
                                "schema": {
                                    "type": "object",
                                    "properties": {
                                        "To": {"type": "string"},
                                        "From": {"type": "string"},
                                        "Body": {"type": "string"},
                                        "StatusCallback": {"type": "string"},
                                    },
                                }
                            }
                        }
                    },
                },
            }
        }
    }
    write(specs / "2.7.0" / "twilio_api_v2010.json", json.dumps(doc))
    write(specs / "packages.json", json.dumps({"twilio": "5.4.0"}))

    tools = tmp_path / "tools"
    write(
        tools / "messaging.ts",
        """
        createTool('send_sms', 'Send an SMS', z.object({
          to: z.string(),
          from: z.string(),
          body: z.string(),
        }), async (p) => client.messages.create(p));
        """,
    )
    root = tmp_path / ".apisync"
    return {"specs": specs, "tools": tools, "root": root, "base": ["--root", str(root), "--spec-dir", str(specs)]}


def test_ping():
    result = runner.invoke(app, ["ping"])
    assert result.exit_code == 0
    assert "pong" in result.output


def test_snapshot_then_noop(workspace):
    result = runner.invoke(app, [*workspace["base"], "snapshot"])
    assert result.exit_code == 0, result.output
    assert "2.7.0" in result.output
    assert (workspace["root"] / "snapshots" / "2.7.0.json").exists()

    state = json.loads((workspace["root"] / "sync-state.json").read_text(encoding="utf-8"))
    assert state["spec"]["version"] == "2.7.0"
    assert state["packages"]["sdk"]["version"] == "5.4.0"

    again = runner.invoke(app, [*workspace["base"], "snapshot"])
    assert again.exit_code == 0
    assert "Already synced" in again.output


def test_stage_commands_end_to_end(workspace):
    base = workspace["base"]
    assert runner.invoke(app, [*base, "snapshot"]).exit_code == 0

    inv = runner.invoke(app, [*base, "inventory", str(workspace["tools"])])
    assert inv.exit_code == 0, inv.output
    assert "send_sms" in inv.output

    boot = runner.invoke(app, [*base, "bootstrap-map"])
    assert boot.exit_code == 0, boot.output
    mapping = json.loads((workspace["root"] / "tool-endpoint-map.json").read_text(encoding="utf-8"))
    assert mapping["send_sms"]["endpoints"] == [
        "twilio_api_v2010:post:/2010-04-01/Accounts/{AccountSid}/Messages.json"
    ]

    diff = runner.invoke(app, [*base, "diff"])
    assert diff.exit_code == 0, diff.output
    assert "Breaking changes: 0" in diff.output
    report = json.loads((workspace["root"] / "reports" / "latest.json").read_text(encoding="utf-8"))
    assert report["baseline"] is True
    assert report["coverage"]["coveragePercent"] == 100.0
    assert [d["toolName"] for d in report["coverage"]["toolsWithParamDrift"]] == ["send_sms"]

    cov = runner.invoke(app, [*base, "coverage"])
    assert cov.exit_code == 0, cov.output
    assert "twilio_api_v2010" in cov.output
    assert "StatusCallback" in cov.output


def test_sync_command(workspace):
    result = runner.invoke(app, [*workspace["base"], "sync", str(workspace["tools"])])
    assert result.exit_code == 0, result.output
    assert "Tools found: 1" in result.output
    assert (workspace["root"] / "reports" / "drift-2.7.0.json").exists()
    assert (workspace["root"] / "inventory.json").exists()

    latest = (workspace["root"] / "reports" / "latest.json").read_bytes()
    again = runner.invoke(app, [*workspace["base"], "sync", str(workspace["tools"])])
    assert again.exit_code == 0, again.output
    assert "Already synced 2.7.0" in again.output
    assert "Tools found" not in again.output
    assert (workspace["root"] / "reports" / "latest.json").read_bytes() == latest


def test_missing_prerequisite_exits_1(workspace):
    result = runner.invoke(app, ["--root", str(workspace["root"]), "bootstrap-map"])
    assert result.exit_code == 1
    assert "missing prerequisite artifact" in result.output

    result = runner.invoke(app, ["--root", str(workspace["root"]), "coverage"])
    assert result.exit_code == 1


def test_bad_config_exits_1(workspace, tmp_path: Path):
    cfg = tmp_path / "bad.json"
    cfg.write_text("[]", encoding="utf-8")
    result = runner.invoke(app, ["--root", str(workspace["root"]), "--config", str(cfg), "diff"])
    assert result.exit_code == 1
    assert "JSON object" in result.output


def test_inventory_rejects_missing_dir(workspace, tmp_path: Path):
    result = runner.invoke(app, [*workspace["base"], "inventory", str(tmp_path / "nope")])
    assert result.exit_code != 0
