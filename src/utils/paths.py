import sys
import os


def get_base_dir():
    """
    Returns the directory holding config.ini and db.env.

    - ACE_CONFIG_DIR wins when set.
    - A frozen executable looks next to itself.
    - Otherwise the project root (src/utils/ -> src/ -> root).
    """
    override = os.getenv("ACE_CONFIG_DIR")
    if override:
        return os.path.abspath(override)
    if getattr(sys, 'frozen', False):
        return os.path.dirname(sys.executable)
    return os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def get_config_path(filename: str) -> str:
    """Returns the absolute path for an external configuration file."""
    return os.path.join(get_base_dir(), filename)
