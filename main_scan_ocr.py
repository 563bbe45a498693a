from __future__ import annotations

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "src"))

from scan_ocr_automation.cli.main import main  # noqa: E402


if __name__ == "__main__":
    sys.exit(main())
