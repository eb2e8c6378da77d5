#!/usr/bin/env python3
from ensure_ui.cli import main

if __name__ == "__main__":
    main()
