#!/usr/bin/env python3
"""Entry point for running the election alerts admin API."""
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dotenv import load_dotenv
load_dotenv()

from src.api.server import main

if __name__ == "__main__":
    main()
