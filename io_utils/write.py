import json
from pathlib import Path
from typing import Any, Dict, Iterable, List

from PIL import Image

from preprocess.candidates import Candidate
from spatial.regions import Region


def write_jsonl(jsonl_path: Path, records: Iterable[Dict[str, Any]], append: bool = False) -> None:
    jsonl_path.parent.mkdir(parents=True, exist_ok=True)
    mode = "a" if append and jsonl_path.exists() else "w"
    with jsonl_path.open(mode, encoding="utf-8") as f:
        for record in records:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")


def write_candidates(output_dir: Path, candidates: Iterable[Candidate]) -> List[Path]:
    """Save candidate images as ``<index>_<label>.png`` in generator order."""
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for index, candidate in enumerate(candidates):
        path = output_dir / f"{index:02d}_{candidate.label}.png"
        candidate.image.save(path, format="PNG")
        paths.append(path)
    return paths


def region_records(regions: Iterable[Region], image: Image.Image) -> List[Dict[str, Any]]:
    """Normalized regions plus their pixel boxes in ``image``."""
    records = []
    for index, region in enumerate(regions):
        left, top, right, bottom = region.to_pixels(image.width, image.height)
        records.append(
            {
                "index": index,
                "x": round(region.x, 6),
                "y": round(region.y, 6),
                "width": round(region.width, 6),
                "height": round(region.height, 6),
                "box": [left, top, right, bottom],
            }
        )
    return records
