"""
Browser setup for capture runs.

Downloads the browser engine(s) Playwright drives. The engine defaults to
BROWSER_TYPE from the environment (chromium when unset), so the installed
browser matches what ``sitecapture`` will launch.
"""
import os
import subprocess
import sys
from typing import List, Optional

SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")


def browsers_to_install(argv: Optional[List[str]] = None) -> List[str]:
    """Pick engines from arguments, else from BROWSER_TYPE."""
    requested = argv if argv else [os.getenv("BROWSER_TYPE", "chromium")]
    browsers = [b.strip().lower() for b in requested if b.strip()]
    unknown = [b for b in browsers if b not in SUPPORTED_BROWSERS]
    if unknown:
        raise SystemExit(f"Unsupported browser(s): {', '.join(unknown)}")
    return browsers or ["chromium"]


def postinstall(argv: Optional[List[str]] = None) -> int:
    """
    Run ``playwright install`` for the capture browser.

    Returns:
        Process exit status
    """
    browsers = browsers_to_install(argv if argv is not None else sys.argv[1:])
    command = [sys.executable, "-m", "playwright", "install", *browsers]

    print(f"Installing Playwright browser(s): {', '.join(browsers)}")
    try:
        result = subprocess.run(command, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as e:
        print(f"Browser installation failed: {e}", file=sys.stderr)
        if e.stderr:
            print(e.stderr, file=sys.stderr)
        print(f"Run manually:\n  {' '.join(command[1:])}", file=sys.stderr)
        return 1

    if result.stdout:
        print(result.stdout)
    print("Browser installation complete.")
    return 0


if __name__ == "__main__":
    sys.exit(postinstall())
