import threading
import time
from datetime import timedelta

import pytest

from lmnp.artifacts import ArtifactKind
from lmnp.errors import TokenExpired, TokenNotFound
from lmnp.tokens import DownloadTokenRegistry


@pytest.fixture
def registry(clock, scheduler):
    return DownloadTokenRegistry(
        timedelta(minutes=5),
        expired_ttl=timedelta(hours=1),
        clock=clock,
        scheduler=scheduler,
    )


def test_register_and_lookup(registry, clock):
    token = registry.register("/tmp/a.pdf", ArtifactKind.PDF)

    record = registry.lookup(token)
    assert record.file_path == "/tmp/a.pdf"
    assert record.kind is ArtifactKind.PDF
    assert record.expires_at == clock.now + timedelta(minutes=5)


def test_tokens_are_long_and_unique(registry):
    tokens = {registry.register(f"/tmp/{i}.pdf", ArtifactKind.PDF) for i in range(50)}
    assert len(tokens) == 50
    # 32 random bytes, base64url encoded
    assert all(len(t) >= 43 for t in tokens)


def test_register_schedules_expiry(registry, scheduler):
    token = registry.register("/tmp/a.xlsx", ArtifactKind.EXCEL)

    [(delay, callback, args)] = scheduler.jobs
    assert delay == 300
    assert args == (token,)


def test_lookup_is_valid_up_to_expiry_instant(registry, clock):
    token = registry.register("/tmp/a.pdf", ArtifactKind.PDF)

    clock.advance(minutes=5)
    assert registry.lookup(token).token == token

    clock.advance(microseconds=1)
    with pytest.raises(TokenExpired):
        registry.lookup(token)
    assert len(registry) == 0


def test_expire_timer_removes_token(registry, scheduler):
    token = registry.register("/tmp/a.pdf", ArtifactKind.PDF)

    scheduler.run_all()

    assert len(registry) == 0
    with pytest.raises(TokenExpired):
        registry.lookup(token)


def test_expire_twice_is_harmless(registry):
    token = registry.register("/tmp/a.pdf", ArtifactKind.PDF)
    registry.expire(token)
    registry.expire(token)
    registry.expire("never-registered")

    with pytest.raises(TokenExpired):
        registry.lookup(token)


def test_unknown_token(registry):
    with pytest.raises(TokenNotFound):
        registry.lookup("nope")


def test_expired_tokens_are_forgotten_eventually(registry, clock):
    token = registry.register("/tmp/a.pdf", ArtifactKind.PDF)
    registry.expire(token)

    clock.advance(hours=2)
    registry.register("/tmp/b.pdf", ArtifactKind.PDF)

    with pytest.raises(TokenNotFound):
        registry.lookup(token)


def test_concurrent_register_lookup_and_expire():
    registry = DownloadTokenRegistry(timedelta(milliseconds=20))
    tokens, errors = [], []
    start = threading.Barrier(8)

    def worker(n):
        start.wait()
        try:
            for i in range(40):
                token = registry.register(f"/tmp/{n}-{i}.pdf", ArtifactKind.PDF)
                tokens.append(token)
                try:
                    registry.lookup(token)
                except TokenExpired:
                    pass
                if i % 3 == 0:
                    registry.expire(token)
                for earlier in tokens[-5:]:
                    try:
                        registry.lookup(earlier)
                    except TokenExpired:
                        pass
        except Exception as exc:  # collected and asserted below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(10)

    assert errors == []
    assert len(set(tokens)) == 8 * 40

    time.sleep(0.1)
    for token in tokens:
        with pytest.raises(TokenExpired):
            registry.lookup(token)
    assert len(registry) == 0
