#!/usr/bin/env python3
"""Entry point without installing: run the httpredis probe server from a checkout.

Same flags as the `httpredis` console script, e.g.
    scripts/run_server.py --host redis1:6380 --tls-cert-file redis.crt --tls-key-file redis.key
"""

import os
import sys

# Project root: always resolve relative to script location, not cwd
_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(_PROJECT_ROOT, "src"))


if __name__ == "__main__":
    from httpredis.cli import main

    sys.exit(main())
