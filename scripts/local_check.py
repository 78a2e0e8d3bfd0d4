import subprocess
import sys
import tomllib


def run(cmd, desc):
    print(f"\n> {desc} ...")
    try:
        subprocess.run(cmd, check=True, shell=True)
    except subprocess.CalledProcessError as e:
        print(f"!  {desc} failed ({e.returncode})")


def check_toml():
    try:
        with open("pyproject.toml", "rb") as f:
            tomllib.load(f)
        print("TOML syntax OK")
    except (OSError, tomllib.TOMLDecodeError) as e:
        print(f"TOML error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    check_toml()
    run("toml-sort pyproject.toml --in-place --all", "Sorting TOML")
    run("python -m black src scripts tests", "Black formatting")
    run("ruff check src scripts tests", "Ruff lint")
    run("mypy src/resalloc", "Mypy type check")
    run("python -m pytest", "Test suite")
    print("\nLocal check completed.")
