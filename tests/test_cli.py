import json

import pytest

from stubs import stub_settings
from tokenpulse import cli
from tokenpulse.models import ProtocolToken, TokenDetails, TokenStatus


class FakeAggregator:
    def __init__(self):
        self.calls = []

    async def fetch_tokens_by_protocols(self, protocols, status=None):
        self.calls.append((protocols, status))
        TokenStatus.parse(status)
        return [ProtocolToken(id="A", protocol="pump"), ProtocolToken(id="B", protocol="pump")]

    async def fetch_token_details(self, chain, address):
        return TokenDetails(chain=chain, address=address)

    async def fetch_pumpfun_tokens(self, kind, limit):
        return []

    async def fetch_launchpad_stats(self):
        return None


@pytest.fixture
def fake(monkeypatch):
    aggregator = FakeAggregator()
    monkeypatch.setattr(cli.ProtocolAggregator, "from_settings", classmethod(lambda cls, s: aggregator))
    monkeypatch.setattr(cli, "load_settings", lambda path=None: stub_settings())
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)
    return aggregator


def test_tokens_command_prints_json(fake, capsys):
    code = cli.main(["tokens", "pump", "moonit", "--status", "new", "--limit", "1"])

    assert code == 0
    assert fake.calls == [(["pump", "moonit"], "new")]
    printed = json.loads(capsys.readouterr().out)
    assert [t["id"] for t in printed] == ["A"]


def test_token_command_exit_code_reflects_lookup(fake, capsys):
    assert cli.main(["token", "Mint", "--chain", "solana"]) == 1
    assert json.loads(capsys.readouterr().out)["address"] == "Mint"


def test_stats_unavailable_is_an_error(fake):
    assert cli.main(["stats"]) == 1


def test_bad_status_exits_with_usage_error(fake):
    assert cli.main(["tokens", "pump", "--status", "soon"]) == 2


def test_missing_config_file(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)
    assert cli.main(["--config", str(tmp_path / "missing.yaml"), "stats"]) == 2


def test_pump_kind_is_validated_by_parser():
    with pytest.raises(SystemExit):
        cli.parse_args(["pump", "hot"])
