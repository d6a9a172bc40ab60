#!/usr/bin/env python3
"""
Start the hello server
Usage: python start_server.py [--host HOST] [--port PORT] [--shutdown-timeout SECONDS]
"""

import sys

from hello_server.__main__ import main

if __name__ == "__main__":
    sys.exit(main())
