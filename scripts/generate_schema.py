#!/usr/bin/env python3
"""Write the OpenAPI schema of the Playlog API to contract/openapi.json."""

import json
import sys
from pathlib import Path

# Make the playlog package importable when run from a checkout
sys.path.append(str(Path(__file__).parent.parent))

from playlog.main import app


def main():
    openapi_schema = app.openapi()

    contract_dir = Path(__file__).parent.parent / "contract"
    contract_dir.mkdir(exist_ok=True)
    schema_path = contract_dir / "openapi.json"

    with open(schema_path, "w", encoding="utf-8") as f:
        json.dump(openapi_schema, f, indent=2)

    print(f"OpenAPI schema with {len(openapi_schema.get('paths', {}))} paths saved to {schema_path}")


if __name__ == "__main__":
    main()
