"""Tests for the tokenkit command line."""

import json

import pytest
from click.testing import CliRunner

from tokenkit.cli import cli, EX_DATAERR, EX_IOERR, EX_NOINPUT
from tokenkit.diff.snapshot_diff import decode_changes, encode_changes, diff_token_files


USDC = {
    "address": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
    "name": "USD Coin",
    "symbol": "USDC",
    "decimals": 6,
}
DAI = {
    "address": "0x6B175474E89094C44Da98b954EedeAC495271d0F",
    "name": "Dai Stablecoin",
    "symbol": "DAI",
    "decimals": 18,
}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def repo(tmp_path, monkeypatch):
    for name in ["TOKENKIT_ROOT", "TOKENKIT_IPFS_API_URL", "TOKENKIT_OUTPUT_NAME", "TOKENKIT_CHAINS_DIR"]:
        monkeypatch.delenv(name, raising=False)
    (tmp_path / "chains").mkdir()
    (tmp_path / "chains" / "1.json").write_text(json.dumps([USDC]))
    (tmp_path / "base.tokenlist.json").write_text(json.dumps({
        "name": "Test List",
        "timestamp": "2024-01-01T00:00:00.000Z",
        "version": {"major": 0, "minor": 1, "patch": 0},
    }))
    return tmp_path


def make_snapshots(tmp_path):
    (tmp_path / "old").mkdir()
    (tmp_path / "new").mkdir()
    (tmp_path / "old" / "1.json").write_text(json.dumps([USDC, DAI]))
    (tmp_path / "new" / "1.json").write_text(json.dumps([{**USDC, "name": "USD Coin (Bridged)"}, DAI]))
    return tmp_path / "old", tmp_path / "new"


class TestBuild:

    def test_build(self, runner, repo):
        result = runner.invoke(cli, ["build", "--root", str(repo)])

        assert result.exit_code == 0, result.output
        built = json.loads((repo / "build" / "tokenlist.json").read_text())
        assert built["tokens"][0]["chainId"] == 1

    def test_build_with_increment(self, runner, repo):
        payload = encode_changes(diff_token_files({"1.json": [USDC]}, {"1.json": [USDC, DAI]}))

        result = runner.invoke(cli, ["build", "--root", str(repo), "--increment-version", f"--git-changes={payload}"])

        assert result.exit_code == 0, result.output
        template = json.loads((repo / "base.tokenlist.json").read_text())
        assert template["version"] == {"major": 0, "minor": 2, "patch": 0}

    def test_build_with_bad_payload_skips_increment(self, runner, repo):
        result = runner.invoke(cli, ["build", "--root", str(repo), "--increment-version", "--git-changes=@@@"])

        assert result.exit_code == 0, result.output
        template = json.loads((repo / "base.tokenlist.json").read_text())
        assert template["version"] == {"major": 0, "minor": 1, "patch": 0}

    def test_invalid_chain_file_exits_dataerr(self, runner, repo):
        (repo / "chains" / "polygon.json").write_text("[]")

        result = runner.invoke(cli, ["build", "--root", str(repo)])

        assert result.exit_code == EX_DATAERR

    def test_invalid_token_list_exits_dataerr(self, runner, repo):
        (repo / "chains" / "1.json").write_text(json.dumps([{**USDC, "decimals": -1}]))

        result = runner.invoke(cli, ["build", "--root", str(repo)])

        assert result.exit_code == EX_DATAERR
        assert not (repo / "build").exists()

    def test_missing_template_exits_noinput(self, runner, repo):
        (repo / "base.tokenlist.json").unlink()

        result = runner.invoke(cli, ["build", "--root", str(repo)])

        assert result.exit_code == EX_NOINPUT

    def test_unreadable_input_exits_ioerr(self, runner, repo, monkeypatch):
        def deny(*args, **kwargs):
            raise PermissionError(13, "Permission denied", str(repo / "base.tokenlist.json"))

        monkeypatch.setattr("tokenkit.cli.build_token_list", deny)

        result = runner.invoke(cli, ["build", "--root", str(repo)])

        assert result.exit_code == EX_IOERR
        assert "Permission denied" in result.output


class TestClassify:

    def test_classify_directories(self, runner, tmp_path):
        old, new = make_snapshots(tmp_path)

        result = runner.invoke(cli, ["classify", "--from-dir", str(old), "--to-dir", str(new)])

        assert result.exit_code == 0, result.output
        assert "Version increment: patch" in result.output

    def test_classify_json(self, runner):
        payload = encode_changes(diff_token_files({"1.json": [USDC]}, {}))

        result = runner.invoke(cli, ["classify", "--git-changes", payload, "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["bump"] == "major"
        assert data["events"][0]["event_type"] == "file_deleted"

    def test_classify_nothing(self, runner):
        result = runner.invoke(cli, ["classify", "--git-changes", ""])

        assert result.exit_code == 0
        assert "Version increment: none" in result.output

    def test_requires_a_source(self, runner):
        result = runner.invoke(cli, ["classify"])

        assert result.exit_code != 0
        assert "--git-changes" in result.output

    def test_from_dir_requires_to_dir(self, runner, tmp_path):
        result = runner.invoke(cli, ["classify", "--from-dir", str(tmp_path)])

        assert result.exit_code != 0


def test_diff_prints_payload(runner, tmp_path):
    old, new = make_snapshots(tmp_path)

    result = runner.invoke(cli, ["diff", "--from-dir", str(old), "--to-dir", str(new)])

    assert result.exit_code == 0, result.output
    [change] = decode_changes(result.output.strip())
    assert change.file == "chains/1.json"
    assert change.after[0].name == "USD Coin (Bridged)"


class TestValidate:

    def test_valid(self, runner, tmp_path):
        path = tmp_path / "list.json"
        path.write_text(json.dumps({
            "name": "Test List",
            "timestamp": "2024-01-01T00:00:00.000Z",
            "version": {"major": 1, "minor": 0, "patch": 0},
            "tokens": [{**USDC, "chainId": 1}],
        }))

        result = runner.invoke(cli, ["validate", str(path)])

        assert result.exit_code == 0, result.output

    def test_invalid(self, runner, tmp_path):
        path = tmp_path / "list.json"
        path.write_text(json.dumps({"name": "Test List"}))

        result = runner.invoke(cli, ["validate", str(path)])

        assert result.exit_code == EX_DATAERR

    def test_not_json(self, runner, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("{")

        result = runner.invoke(cli, ["validate", str(path)])

        assert result.exit_code == EX_DATAERR
