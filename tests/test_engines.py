"""Tests for the massdns and builtin resolver engines."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, call, patch

import aiodns
import pytest

from sievedns.core.config import Config
from sievedns.core.errors import AdapterError, ConfigurationError, RecordParseError
from sievedns.core.rate_limiter import RateLimiter
from sievedns.resolvers import get_resolver
from sievedns.resolvers.builtin import AsyncDNSResolver
from sievedns.resolvers.massdns import MassDNSResolver


# ---------------------------------------------------------------------------
# massdns
# ---------------------------------------------------------------------------


def _fake_exec(lines=None, returncode=0, stderr=b"", stderr_error=None):
    """Return a fake ``create_subprocess_exec`` and a dict capturing its use."""
    captured: dict = {}

    async def _exec(*cmd, **kwargs):
        cmd = list(cmd)
        captured["cmd"] = cmd
        captured["resolvers"] = Path(cmd[cmd.index("-r") + 1]).read_text()
        output = Path(cmd[cmd.index("-w") + 1])
        captured["output"] = output
        if lines is not None:
            output.write_text("\n".join(lines) + "\n")
        proc = MagicMock()
        proc.stdin = MagicMock()
        proc.stdin.drain = AsyncMock()
        proc.stderr = MagicMock()
        proc.stderr.read = AsyncMock(return_value=stderr, side_effect=stderr_error)
        proc.returncode = None

        async def _wait():
            if proc.returncode is None:
                proc.returncode = returncode
            return proc.returncode

        proc.wait = AsyncMock(side_effect=_wait)
        proc.kill = MagicMock(side_effect=lambda: setattr(proc, "returncode", -9))
        captured["proc"] = proc
        return proc

    return _exec, captured


@pytest.mark.asyncio
async def test_massdns_parses_records_and_feeds_stdin():
    fake, captured = _fake_exec([
        "a.x.com. A 1.1.1.1",
        "www.x.com. CNAME a.x.com.",
        "x.com. SOA ns1.x.com. hostmaster.x.com. 1 7200 900 1209600 86400",
    ])
    with (
        patch("sievedns.resolvers.massdns.shutil.which", return_value="/usr/bin/massdns"),
        patch("sievedns.resolvers.massdns.asyncio.create_subprocess_exec", side_effect=fake),
    ):
        store = await MassDNSResolver(hashmap_size=500).resolve(
            ["a.x.com", "www.x.com"], ["1.1.1.1", "8.8.8.8"]
        )

    assert store.names() == ["a.x.com", "www.x.com"]
    assert captured["cmd"][0] == "/usr/bin/massdns"
    assert captured["cmd"][captured["cmd"].index("-s") + 1] == "500"
    assert captured["cmd"][captured["cmd"].index("-o") + 1] == "S"
    assert captured["resolvers"] == "1.1.1.1\n8.8.8.8\n"
    stdin = captured["proc"].stdin
    assert stdin.write.call_args_list == [call(b"a.x.com\n"), call(b"www.x.com\n")]
    stdin.close.assert_called_once()


@pytest.mark.asyncio
async def test_massdns_cleans_up_temporary_files():
    fake, captured = _fake_exec(["a.x.com. A 1.1.1.1"])
    with (
        patch("sievedns.resolvers.massdns.shutil.which", return_value="/usr/bin/massdns"),
        patch("sievedns.resolvers.massdns.asyncio.create_subprocess_exec", side_effect=fake),
    ):
        await MassDNSResolver().resolve(["a.x.com"], ["1.1.1.1"])
    assert not captured["output"].parent.exists()


@pytest.mark.asyncio
async def test_massdns_nonzero_exit_is_adapter_error():
    fake, captured = _fake_exec(None, returncode=1, stderr=b"warming up\nfatal: bad resolvers\n")
    with (
        patch("sievedns.resolvers.massdns.shutil.which", return_value="/usr/bin/massdns"),
        patch("sievedns.resolvers.massdns.asyncio.create_subprocess_exec", side_effect=fake),
    ):
        with pytest.raises(AdapterError, match="fatal: bad resolvers"):
            await MassDNSResolver().resolve(["a.x.com"], ["1.1.1.1"])
    assert not captured["output"].parent.exists()


@pytest.mark.asyncio
async def test_massdns_killed_when_io_fails():
    fake, captured = _fake_exec(None, stderr_error=RuntimeError("pipe exploded"))
    with (
        patch("sievedns.resolvers.massdns.shutil.which", return_value="/usr/bin/massdns"),
        patch("sievedns.resolvers.massdns.asyncio.create_subprocess_exec", side_effect=fake),
    ):
        with pytest.raises(RuntimeError, match="pipe exploded"):
            await MassDNSResolver().resolve(["a.x.com"], ["1.1.1.1"])
    proc = captured["proc"]
    proc.kill.assert_called_once()
    proc.wait.assert_awaited()
    assert not captured["output"].parent.exists()


@pytest.mark.asyncio
async def test_massdns_unparseable_output():
    fake, _ = _fake_exec(["this is not a record"])
    with (
        patch("sievedns.resolvers.massdns.shutil.which", return_value="/usr/bin/massdns"),
        patch("sievedns.resolvers.massdns.asyncio.create_subprocess_exec", side_effect=fake),
    ):
        with pytest.raises(RecordParseError):
            await MassDNSResolver().resolve(["a.x.com"], ["1.1.1.1"])


@pytest.mark.asyncio
async def test_massdns_missing_binary():
    with patch("sievedns.resolvers.massdns.shutil.which", return_value=None):
        with pytest.raises(ConfigurationError):
            await MassDNSResolver(binary="nope").resolve(["a.x.com"], ["1.1.1.1"])


@pytest.mark.asyncio
async def test_massdns_no_names_skips_process():
    with (
        patch("sievedns.resolvers.massdns.shutil.which", return_value="/usr/bin/massdns"),
        patch("sievedns.resolvers.massdns.asyncio.create_subprocess_exec") as exec_mock,
    ):
        store = await MassDNSResolver().resolve([], ["1.1.1.1"])
    assert len(store) == 0
    exec_mock.assert_not_called()


@pytest.mark.asyncio
async def test_massdns_rate_limit_paces_input():
    fake, _ = _fake_exec(["a.x.com. A 1.1.1.1"])
    limiter = RateLimiter(1000)
    limiter.acquire = AsyncMock()
    with (
        patch("sievedns.resolvers.massdns.shutil.which", return_value="/usr/bin/massdns"),
        patch("sievedns.resolvers.massdns.asyncio.create_subprocess_exec", side_effect=fake),
    ):
        await MassDNSResolver().resolve(["a.x.com", "b.x.com", "c.x.com"], ["1.1.1.1"], limiter)
    assert limiter.acquire.await_count == 3


# ---------------------------------------------------------------------------
# builtin (aiodns)
# ---------------------------------------------------------------------------


def _fake_channel_factory(table):
    channels = []

    def _factory(nameservers, timeout, tries):
        channel = MagicMock()
        channel.nameservers = nameservers

        async def _query(name, qtype):
            if name in table:
                return [SimpleNamespace(host=h) for h in table[name]]
            raise aiodns.error.DNSError(4, "Domain name not found")

        channel.query = AsyncMock(side_effect=_query)
        channels.append(channel)
        return channel

    return _factory, channels


@pytest.mark.asyncio
async def test_builtin_resolves_and_skips_failures():
    factory, _ = _fake_channel_factory({"a.x.com": ["1.1.1.1", "2.2.2.2"]})
    with patch("sievedns.resolvers.builtin.aiodns.DNSResolver", side_effect=factory):
        store = await AsyncDNSResolver().resolve(["a.x.com", "nx.x.com"], ["8.8.8.8"])
    assert store.names() == ["a.x.com"]
    assert store.to_lines() == ["a.x.com. A 1.1.1.1", "a.x.com. A 2.2.2.2"]


@pytest.mark.asyncio
async def test_builtin_reuses_channel_per_nameserver():
    factory, channels = _fake_channel_factory({})
    with patch("sievedns.resolvers.builtin.aiodns.DNSResolver", side_effect=factory):
        await AsyncDNSResolver().resolve(["a.x.com", "b.x.com", "c.x.com"], ["8.8.8.8"])
    assert len(channels) == 1
    assert channels[0].nameservers == ["8.8.8.8"]
    assert channels[0].query.await_count == 3


@pytest.mark.asyncio
async def test_builtin_uses_rate_limiter():
    factory, _ = _fake_channel_factory({})
    limiter = RateLimiter(1000)
    limiter.acquire = AsyncMock()
    with patch("sievedns.resolvers.builtin.aiodns.DNSResolver", side_effect=factory):
        await AsyncDNSResolver().resolve(["a.x.com", "b.x.com"], ["8.8.8.8"], limiter)
    assert limiter.acquire.await_count == 2


@pytest.mark.asyncio
async def test_builtin_empty_pool_is_configuration_error():
    with pytest.raises(ConfigurationError):
        await AsyncDNSResolver().resolve(["a.x.com"], [])


# ---------------------------------------------------------------------------
# engine selection
# ---------------------------------------------------------------------------


def test_get_resolver_default_is_massdns():
    resolver = get_resolver(Config())
    assert isinstance(resolver, MassDNSResolver)
    assert resolver.binary == "massdns"


def test_get_resolver_builtin():
    cfg = Config()
    cfg.resolve.engine = "builtin"
    assert isinstance(get_resolver(cfg), AsyncDNSResolver)


def test_get_resolver_unknown():
    cfg = Config()
    cfg.resolve.engine = "bogus"
    with pytest.raises(ConfigurationError):
        get_resolver(cfg)
