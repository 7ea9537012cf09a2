"""
Input validation for user-supplied paths.
"""
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def validate_config_path(config_path: str) -> Path:
    """
    Validate a config path given on the command line.

    Args:
        config_path: User-provided config path

    Returns:
        Resolved Path object

    Raises:
        ValueError: If the path is empty, missing, or not a YAML file
    """
    if not config_path:
        raise ValueError("Config path cannot be empty")

    resolved = Path(config_path).expanduser().resolve()

    if resolved.suffix not in ['.yaml', '.yml']:
        raise ValueError(f"Config file must be a YAML file, got: {resolved.suffix}")
    if not resolved.is_file():
        raise ValueError(f"Config file not found: {config_path}")

    return resolved


def validate_file_path(file_path: str, base_dir: Path) -> Path:
    """
    Validate file path is within base directory to prevent path traversal.

    Staged content locators come from the source export, so they are treated
    as untrusted.

    Args:
        file_path: Relative path below ``base_dir``
        base_dir: Directory the file must stay within

    Returns:
        Validated absolute Path object

    Raises:
        ValueError: If the path is empty or resolves outside ``base_dir``
    """
    if not file_path:
        raise ValueError("File path cannot be empty")

    base_dir_resolved = Path(base_dir).resolve()
    resolved = (base_dir_resolved / file_path).resolve()

    try:
        resolved.relative_to(base_dir_resolved)
    except ValueError:
        logger.warning(f"Rejected path outside {base_dir_resolved}: {file_path}")
        raise ValueError(
            f"File path must be within base directory. "
            f"Base: {base_dir_resolved}, Got: {resolved}"
        )

    if resolved == base_dir_resolved:
        raise ValueError(f"File path must name a file below {base_dir_resolved}")

    return resolved
