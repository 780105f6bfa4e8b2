"""Configuration management for QuickJot."""

import fcntl
import os
import sys
from contextlib import contextmanager
from pathlib import Path

import toml
from pydantic import BaseModel, Field, ValidationError

CONFIG_DIR = Path.home() / ".quickjot"
CONFIG_FILE = CONFIG_DIR / "config.toml"
LOCK_DIR = CONFIG_DIR / "locks"

# Environment overrides (loaded from .env on package import)
ENV_CLASSIFIER_URL = "QUICKJOT_CLASSIFIER_URL"
ENV_SAVE_URL = "QUICKJOT_SAVE_URL"
ENV_API_KEY = "QUICKJOT_API_KEY"


# =============================================================================
# File Locking Context Manager
# =============================================================================

def validate_lock_name(name: str) -> bool:
    """Validate a lock name is safe for filesystem use.

    Prevents path traversal via names like "../etc/passwd".
    """
    if not name or len(name) > 128:
        return False
    return all(c.isalnum() or c in "_-" for c in name)


@contextmanager
def _file_lock(name: str):
    """Context manager for cross-process file locking.

    Usage:
        with _file_lock("queue_pending-saves"):
            # ... read-modify-write ...
    """
    if not validate_lock_name(name):
        raise ValueError(f"Invalid lock name: {name}")

    LOCK_DIR.mkdir(parents=True, exist_ok=True)
    lock_file = LOCK_DIR / f"{name}.lock"

    # Create lock file with restricted permissions
    fd = os.open(str(lock_file), os.O_CREAT | os.O_WRONLY, 0o600)
    try:
        lock_fh = os.fdopen(fd, 'w', encoding='utf-8')
    except Exception:
        os.close(fd)
        raise

    try:
        fcntl.flock(lock_fh.fileno(), fcntl.LOCK_EX)
        yield lock_fh
    finally:
        try:
            fcntl.flock(lock_fh.fileno(), fcntl.LOCK_UN)
        except OSError:
            pass
        lock_fh.close()


# =============================================================================
# Config Models
# =============================================================================

class PipelineConfig(BaseModel):
    """Local classification pipeline settings."""

    # Schema cap on items in a CanonicalResult (also sent to the remote classifier)
    max_items: int = Field(default=15, ge=1, le=100)
    # Word count a reflective segment must exceed to be read as a journal entry
    journal_min_words: int = Field(default=25, ge=1)


class PostFilterConfig(BaseModel):
    """Post-filter thresholds.

    The near-duplicate thresholds were picked empirically; tune them here
    rather than in code.
    """

    max_items: int = Field(default=5, ge=1)
    containment_threshold: float = Field(default=0.9, ge=0.0, le=1.0)
    max_extra_tokens: int = Field(default=2, ge=0)


class RemoteConfig(BaseModel):
    """Remote classifier and save backend endpoints."""

    classifier_url: str | None = None
    save_url: str | None = None
    timeout_seconds: float = Field(default=10.0, gt=0)
    max_retries: int = Field(default=2, ge=1)
    retry_delay_seconds: float = Field(default=0.5, ge=0)


class QueueConfig(BaseModel):
    """Offline persistence queue settings."""

    key: str = "quickjot:pending-saves"
    max_retries: int = Field(default=3, ge=1)
    # Keep a JSON-lines record of jobs dropped after exhausting retries
    dead_letter: bool = True

    # Connectivity probe (TCP connect to a well-known host)
    probe_host: str = "1.1.1.1"
    probe_port: int = 53
    probe_interval_seconds: float = Field(default=5.0, gt=0)
    probe_timeout_seconds: float = Field(default=2.0, gt=0)


class QuickJotConfig(BaseModel):
    """Main configuration model."""

    timezone: str = "UTC"
    user_id: str = "anonymous"
    queue_dir: Path = Field(default_factory=lambda: CONFIG_DIR / "queue")
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    post_filter: PostFilterConfig = Field(default_factory=PostFilterConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)

    def resolved_classifier_url(self) -> str | None:
        """Classifier endpoint, environment taking precedence over the file."""
        return os.environ.get(ENV_CLASSIFIER_URL) or self.remote.classifier_url

    def resolved_save_url(self) -> str | None:
        """Save endpoint, environment taking precedence over the file."""
        return os.environ.get(ENV_SAVE_URL) or self.remote.save_url


def ensure_config_dirs(config: QuickJotConfig) -> None:
    """Create config directories if they don't exist."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    config.queue_dir.mkdir(parents=True, exist_ok=True)


def load_config() -> QuickJotConfig:
    """Load configuration from file, or create defaults."""
    if CONFIG_FILE.exists():
        try:
            data = toml.load(CONFIG_FILE)
            if "queue_dir" in data and isinstance(data["queue_dir"], str):
                queue_dir = Path(data["queue_dir"]).expanduser()
                if not queue_dir.is_absolute():
                    raise ValueError(f"Config path must be absolute: queue_dir={queue_dir}")
                data["queue_dir"] = queue_dir
            config = QuickJotConfig.model_validate(data)
        except ValidationError as e:
            print(f"Warning: Config validation failed ({e}), using defaults", file=sys.stderr)
            config = QuickJotConfig()
        except (toml.TomlDecodeError, ValueError, TypeError) as e:
            print(f"Warning: Failed to load config ({e}), using defaults", file=sys.stderr)
            config = QuickJotConfig()
        except OSError as e:
            print(f"Warning: Could not read config ({e}), using defaults", file=sys.stderr)
            config = QuickJotConfig()
    else:
        config = QuickJotConfig()
        save_config(config)

    ensure_config_dirs(config)
    return config


def save_config(config: QuickJotConfig) -> None:
    """Save configuration to file with atomic write."""
    import tempfile

    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(exclude_none=True)
    # TOML has no Path type
    data["queue_dir"] = str(config.queue_dir)

    # Write to temporary file first (atomic operation)
    temp_fd, temp_path = tempfile.mkstemp(dir=CONFIG_DIR, prefix=".config_", suffix=".toml.tmp")
    try:
        with os.fdopen(temp_fd, 'w', encoding='utf-8') as f:
            toml.dump(data, f)

        # Set restrictive permissions before moving
        os.chmod(temp_path, 0o600)

        os.replace(temp_path, CONFIG_FILE)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise
