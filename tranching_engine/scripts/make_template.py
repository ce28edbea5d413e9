from __future__ import annotations

from tranching_engine.excel_writer import ensure_template


def main():
    ensure_template("tranching_template.xlsx")
    print("Created tranching_template.xlsx")


if __name__ == "__main__":
    main()
