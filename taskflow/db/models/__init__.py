"""taskflow models."""

from pathlib import Path

from taskflow.settings import settings


def load_all_models() -> None:
    """Import every app's models so they register on the shared metadata."""
    package_root = Path(__file__).resolve().parent.parent.parent
    for app in settings.app_names:
        models_file = package_root / app / "models.py"
        if models_file.exists():
            __import__(f"taskflow.{app}.models")
