from pathlib import Path

# project_root = parent of the bizcore package directory
project_root = Path(__file__).resolve().parent.parent
package_root = project_root / "bizcore"
logs_root = project_root / "logs"
exports_root = project_root / "exports"
