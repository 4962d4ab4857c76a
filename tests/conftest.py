import pytest


@pytest.fixture(autouse=True)
def isolate_global_config(tmp_path, monkeypatch):
    """Point the global configuration file at a per-test location.

    Tests must never read or write the user's real
    ``~/.mcp-git-config.json``.
    """
    global_path = tmp_path / "home" / ".mcp-git-config.json"
    monkeypatch.setattr(
        "vc_smart_commit.config.loader._get_global_config_path",
        lambda: global_path,
    )
    yield global_path

