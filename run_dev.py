#!/usr/bin/env python3
"""
Development server launcher for Resume Studio.
Starts the FastAPI backend with auto-reload.
"""

import os
import sys
import subprocess
import signal
from pathlib import Path

# Colors for terminal output
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
RESET = "\033[0m"

def print_colored(message: str, color: str = RESET):
    print(f"{color}{message}{RESET}")

def check_dependencies():
    """Check if required dependencies are installed."""
    issues = []

    try:
        import uvicorn  # noqa: F401
        import fastapi  # noqa: F401
    except ImportError:
        issues.append("Python dependencies not installed. Run: pip install -e '.[test]'")

    if os.getenv("COMPILER_MODE", "remote").lower() == "tectonic":
        try:
            subprocess.run(["tectonic", "--version"], capture_output=True, check=True)
        except (subprocess.CalledProcessError, FileNotFoundError):
            issues.append("COMPILER_MODE=tectonic needs the 'tectonic' binary on PATH.")

    return issues

def start_backend():
    """Start the FastAPI backend server."""
    print_colored("🚀 Starting backend server on http://localhost:8000", GREEN)
    base_dir = Path(__file__).parent.resolve()
    package_dir = base_dir / "resume_studio"

    cmd = [
        sys.executable, "-m", "uvicorn", "resume_studio.main:app",
        "--host", "0.0.0.0", "--port", "8000", "--reload",
        "--reload-dir", str(package_dir),
    ]

    # SQLite WAL churn under data/ must not trigger reloads; "**" globs match nested files
    reload_excludes = [
        "../data/**",
        "data/**",
        "**/*.db*",
        "**/__pycache__/**",
        "**/.venv/**",
    ]

    for exclude in reload_excludes:
        cmd.extend(["--reload-exclude", exclude])

    return subprocess.Popen(
        cmd,
        cwd=package_dir,
        env={**os.environ, "PYTHONPATH": str(base_dir)},
    )

def main():
    """Main entry point."""
    print_colored("=" * 60, GREEN)
    print_colored("Resume Studio Development Server", GREEN)
    print_colored("=" * 60, GREEN)

    issues = check_dependencies()
    if issues:
        print_colored("\n⚠️  Issues found:", YELLOW)
        for issue in issues:
            print_colored(f"  - {issue}", YELLOW)
        print_colored("\nPlease fix these issues before starting the server.\n", RED)
        sys.exit(1)

    backend_process = start_backend()

    def cleanup(signum, frame):
        """Stop the backend process."""
        print_colored("\n\n🛑 Shutting down server...", YELLOW)
        try:
            backend_process.terminate()
            backend_process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            backend_process.kill()
        print_colored("✅ Server stopped.", GREEN)
        sys.exit(0)

    signal.signal(signal.SIGINT, cleanup)
    signal.signal(signal.SIGTERM, cleanup)

    print_colored("📝 Backend API: http://localhost:8000", GREEN)
    print_colored("📝 Backend Docs: http://localhost:8000/docs", GREEN)
    print_colored("\nPress Ctrl+C to stop.\n", YELLOW)

    try:
        code = backend_process.wait()
        print_colored(f"\n⚠️  Backend exited with code {code}", RED)
    except KeyboardInterrupt:
        cleanup(None, None)

if __name__ == "__main__":
    main()
