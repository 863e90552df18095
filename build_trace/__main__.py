"""Allow ``python -m build_trace``."""

from build_trace.cli import main

raise SystemExit(main())
