#!/usr/bin/env python3
"""
Entry point for the httpscope demo server
"""
from httpscope.main import main

if __name__ == '__main__':
    main()
