import pytest

from at_first import cli


@pytest.fixture
def rendered(monkeypatch):
    calls = []

    async def fake_render_feed(actor, collection, save_cache=True):
        calls.append((actor, collection, save_cache))
        return "<html>feed</html>"

    monkeypatch.setattr(cli, "render_feed", fake_render_feed)
    return calls


def test_render_writes_html(tmp_path, rendered):
    output = tmp_path / "feed.html"

    assert cli.main(["render", "@alice.test", "-o", str(output)]) == 0

    assert output.read_text(encoding="utf-8") == "<html>feed</html>"
    assert rendered == [("alice.test", "app.bsky.feed.post", True)]


def test_render_options(tmp_path, rendered):
    output = tmp_path / "blog.html"
    cli.main(["render", "alice.test", "-c", "com.whtwnd.blog.entry", "-o", str(output), "--no-save"])
    assert rendered == [("alice.test", "com.whtwnd.blog.entry", False)]


def test_command_is_required():
    with pytest.raises(SystemExit):
        cli.main([])
