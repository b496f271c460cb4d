"""Write the OpenAPI document of the ERP API to interfaces/openapi.json."""

import json
import os
import sys

from erp_api.api.main import app


# PUBLIC_INTERFACE
def main(output_dir: str = "interfaces") -> str:
    """Dump app.openapi() and return the path written."""
    os.makedirs(output_dir, exist_ok=True)
    output_path = os.path.join(output_dir, "openapi.json")
    with open(output_path, "w") as f:
        json.dump(app.openapi(), f, indent=2)
    return output_path


if __name__ == "__main__":
    print(main(*sys.argv[1:2]))
