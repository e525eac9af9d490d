"""Run the ember driver from a source checkout: python ember.py [option]+"""
from ember.ember_cli import main

if __name__ == "__main__":
    raise SystemExit(main())
