#!/usr/bin/env python
"""
Label Print Service - Standalone Entry Point

Run directly:
    python main.py

Or with environment variables:
    LABEL_PRINT_PORT=5200 python main.py
"""

from label_print_service.app import main


if __name__ == '__main__':
    main()
