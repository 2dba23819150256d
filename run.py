#!/usr/bin/env python3
"""Backup runner, suitable for cron: ``run.py <backup directory>``"""
import sys
from zipkeeper.cli import main

if __name__ == '__main__':
    sys.exit(main())
