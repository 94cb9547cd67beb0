"""Allow ``python -m cppcheckdata_mtag``."""

from cppcheckdata_mtag.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
