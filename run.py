#!/usr/bin/env python3
"""Single-shot backup runner for an external scheduler"""
from dailyzip.__main__ import main

if __name__ == '__main__':
    main()
