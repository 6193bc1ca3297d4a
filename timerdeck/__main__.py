"""Entry point for timerdeck: python -m timerdeck"""

from timerdeck.timerdeck import main

if __name__ == "__main__":
    main()
