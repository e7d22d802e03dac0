#!/usr/bin/env python3
"""Check that the age detector checkout is complete and importable."""
import importlib
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent

PACKAGE_DIRS = [
    ("age_detector", "Package"),
    ("age_detector/backend", "Backend"),
    ("age_detector/frontend", "Frontend"),
    ("age_detector/imaging", "Imaging"),
    ("age_detector/config", "Config"),
]

SOURCE_FILES = [
    ("pyproject.toml", "Project metadata"),
    ("age_detector/backend/main.py", "FastAPI backend"),
    ("age_detector/backend/forwarder.py", "Upload forwarder"),
    ("age_detector/backend/resolver.py", "Field resolver"),
    ("age_detector/imaging/normalizer.py", "Image normalizer"),
    ("age_detector/frontend/app.py", "Streamlit frontend"),
    ("age_detector/frontend/detection.py", "Detection round trip"),
    ("age_detector/config/settings.py", "Settings"),
]

MODULES = [
    ("age_detector.config.settings", "Settings"),
    ("age_detector.backend.main", "Backend app"),
    ("age_detector.imaging.normalizer", "Normalizer"),
    ("age_detector.frontend.camera", "Camera"),
    ("age_detector.frontend.detection", "Detection round trip"),
]


def missing_paths(entries, want_dir):
    """Print one line per entry and return the descriptions that are absent."""
    missing = []
    for relative, label in entries:
        path = ROOT / relative
        present = path.is_dir() if want_dir else path.is_file()
        print(f"  [{'ok' if present else 'missing'}] {label}: {relative}")
        if not present:
            missing.append(relative)
    return missing


def failed_imports(modules):
    """Import each module; return a mapping of module name to error text."""
    failures = {}
    for name, label in modules:
        try:
            importlib.import_module(name)
        except ImportError as e:
            failures[name] = str(e)
            print(f"  [warn] {label}: {name} ({e})")
        else:
            print(f"  [ok] {label}: {name}")
    return failures


def section(title):
    print(title)
    print("-" * 60)


def main():
    """Run validation checks."""
    print("=" * 60)
    print("Age Detector - Setup Validation")
    print("=" * 60)

    section("1. Package layout")
    missing = missing_paths(PACKAGE_DIRS, want_dir=True)
    print()

    section("2. Source files")
    missing += missing_paths(SOURCE_FILES, want_dir=False)
    print()

    sys.path.insert(0, str(ROOT))
    section("3. Imports (needs installed dependencies)")
    failures = failed_imports(MODULES)
    print()

    if not failures:
        from age_detector.config.settings import ALLOWED_ORIGINS, PYTHON_API_URL
        section("4. Configuration")
        print(f"  Upstream prediction service: {PYTHON_API_URL}")
        print(f"  Allowed origins: {', '.join(ALLOWED_ORIGINS)}")
        print()

    print("=" * 60)
    if missing:
        print(f"Missing {len(missing)} path(s): {', '.join(missing)}")
        sys.exit(1)

    print("Layout complete.")
    if failures:
        print(f"{len(failures)} module(s) failed to import; run: pip install -e .[test]")
    print("Start the backend: python -m age_detector.backend.main")
    print("Start the UI:      streamlit run age_detector/frontend/app.py (http://localhost:8501)")


if __name__ == "__main__":
    main()
