#!/usr/bin/env python3
"""
Local entrypoint for the bonding curve service.

Curve parameters are read from the JSON file named by CAPITAL_CURVE_CONFIG,
or the defaults when it is unset. Use `python3 server.py`.
"""

from capital_curve_app.main import app, run


if __name__ == "__main__":
    run()
