#!/usr/bin/env python3
"""
Custodial Ledger Entry Point

Starts the FastAPI server hosting a single custodial bank.
"""

import sys

from custodial_ledger.api import run_server
from custodial_ledger.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Custodial Ledger...")
    print(f"Bank owner: {config.bank_owner}")
    print(f"Caller identity header: {config.api_caller_header}")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(debug=False)
    except KeyboardInterrupt:
        print("\nShutting down Custodial Ledger...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
