"""Test engine configuration loading and saving."""
import sys
import io
import json
from pathlib import Path
import tempfile
import shutil

# Fix Windows console encoding (only if not already wrapped)
if sys.platform == 'win32':
    if not isinstance(sys.stdout, io.TextIOWrapper) or (hasattr(sys.stdout, 'encoding') and sys.stdout.encoding != 'utf-8'):
        sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')
    if not isinstance(sys.stderr, io.TextIOWrapper) or (hasattr(sys.stderr, 'encoding') and sys.stderr.encoding != 'utf-8'):
        sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8', errors='replace')

# Add project root and src to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(project_root / "src"))

from guild_boss_timer import config
from guild_boss_timer.config import EngineConfig, load_config, save_config


def test_engine_config():
    """Test config defaults, merging and persistence."""
    print("Testing Engine Config...")
    print("=" * 60)

    temp_dir = Path(tempfile.mkdtemp())
    try:
        defaults = load_config(temp_dir / "missing.json")
        assert defaults == EngineConfig()
        assert defaults.promotion_interval_seconds == 5
        assert defaults.notification_poll_seconds == 60
        assert defaults.retry_after_error_seconds == 300
        assert defaults.send_lock_ttl_seconds == 120
        assert defaults.webhook_timeout_seconds == 10
        assert defaults.beacon_fallback is True
        print("[OK] Missing file gives defaults")

        path = temp_dir / "engine_settings.json"
        path.write_text(json.dumps({
            "data_dir": str(temp_dir),
            "notification_poll_seconds": 30,
            "beacon_fallback": False,
            "promotion_workers": "lots",
            "send_lock_ttl_seconds": -5,
            "colour": "blue",
        }), encoding="utf-8")
        loaded = load_config(path)
        assert loaded.notification_poll_seconds == 30
        assert loaded.beacon_fallback is False
        assert loaded.promotion_workers == 8, "Invalid value keeps the default"
        assert loaded.send_lock_ttl_seconds == 120
        assert loaded.store_path == temp_dir / "boss_timer_store.json"
        assert loaded.log_dir == temp_dir / "logs"
        print("[OK] Merged over defaults; unknown and invalid keys ignored")

        path.write_text("{broken", encoding="utf-8")
        assert load_config(path) == EngineConfig()
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_config(path) == EngineConfig()
        print("[OK] Corrupt file gives defaults")

        saved = EngineConfig(data_dir=str(temp_dir), promotion_interval_seconds=2.5, log_level="DEBUG")
        out = temp_dir / "nested" / "engine_settings.json"
        save_config(saved, out)
        assert load_config(out) == saved
        print("[OK] Saved and reloaded")
    finally:
        shutil.rmtree(temp_dir)

    assert config.user_data_dir().name == config.APP_NAME
    print("[OK] User data directory")

    print("\n" + "=" * 60)
    print("All tests passed!")


if __name__ == "__main__":
    test_engine_config()
