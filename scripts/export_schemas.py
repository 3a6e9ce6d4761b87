"""Export JSON schemas for Itinerary, TravelNode and SearchConditions."""

import json
from pathlib import Path

from pydantic import BaseModel

from backend.app.models import Itinerary, SearchConditions, TravelNode

EXPORTED_MODELS: list[type[BaseModel]] = [Itinerary, TravelNode, SearchConditions]


def main(schemas_dir: Path = Path("docs/schemas")) -> list[Path]:
    """Export schemas to docs/schemas/."""
    schemas_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for model in EXPORTED_MODELS:
        path = schemas_dir / f"{model.__name__}.schema.json"
        with open(path, "w") as f:
            json.dump(model.model_json_schema(), f, indent=2)
        print(f"Exported {model.__name__} schema to {path}")
        written.append(path)
    return written


if __name__ == "__main__":
    main()
