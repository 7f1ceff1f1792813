import asyncio

import pytest

from tokenpulse import http


def test_json_helpers_round_trip_bytes_and_text():
    data = http.dumps({"a": 1, "b": [1, 2]})
    assert isinstance(data, bytes)
    assert http.loads(data)["b"] == [1, 2]
    assert http.loads(data.decode())["a"] == 1
    assert http.dumps({"a": 1}, pretty=True).startswith(b"{\n")


@pytest.mark.asyncio
async def test_get_session_is_shared_per_loop():
    s1 = await http.get_session()
    s2 = await http.get_session()
    try:
        assert s1 is s2
        assert s1.headers["Accept"] == "application/json"
    finally:
        await http.close_session()
    assert s1.closed
    s3 = await http.get_session()
    assert s3 is not s1
    await http.close_session()


def test_sessions_are_not_shared_across_loops():
    async def grab():
        session = await http.get_session()
        await http.close_session()
        return session

    assert asyncio.run(grab()) is not asyncio.run(grab())
