"""Python wrapper for the Swift Vision text recognition script."""

from __future__ import annotations

import asyncio
import json
import logging
import tempfile
from pathlib import Path
from typing import Any, Dict

from PIL import Image

from ..errors import EngineError

logger = logging.getLogger(__name__)

TIMEOUT_S = 30.0

# Reads options as JSON from argv[2] and prints a JSON object on stdout:
# {"lines": [...]} for "recognize", {"boxes": [[x, y, w, h], ...]} for "detect".
SWIFT_SCRIPT = r"""
import Foundation
import Vision
import AppKit

let args = CommandLine.arguments
guard args.count > 2 else {
    fputs("Usage: swift - <image_path> <options_json>\n", stderr)
    exit(2)
}

let imageURL = URL(fileURLWithPath: args[1])
guard let image = NSImage(contentsOf: imageURL),
      let cgImage = image.cgImage(forProposedRect: nil, context: nil, hints: nil) else {
    fputs("Error: Could not load image\n", stderr)
    exit(1)
}

let options = (try? JSONSerialization.jsonObject(with: Data(args[2].utf8))) as? [String: Any] ?? [:]
let task = options["task"] as? String ?? "recognize"
let handler = VNImageRequestHandler(cgImage: cgImage, options: [:])

func emit(_ object: Any) {
    let data = try! JSONSerialization.data(withJSONObject: object)
    print(String(data: data, encoding: .utf8)!)
}

do {
    if task == "detect" {
        let request = VNDetectTextRectanglesRequest()
        request.reportCharacterBoxes = false
        try handler.perform([request])
        let boxes = (request.results ?? []).map { obs -> [Double] in
            let bb = obs.boundingBox
            return [Double(bb.origin.x), Double(bb.origin.y), Double(bb.width), Double(bb.height)]
        }
        emit(["boxes": boxes])
    } else {
        let request = VNRecognizeTextRequest()
        request.recognitionLevel = (options["level"] as? String) == "fast" ? .fast : .accurate
        request.usesLanguageCorrection = options["correction"] as? Bool ?? true
        request.minimumTextHeight = Float(options["minimumTextHeight"] as? Double ?? 0.0)
        if let roi = options["roi"] as? [Double], roi.count == 4 {
            request.regionOfInterest = CGRect(x: roi[0], y: roi[1], width: roi[2], height: roi[3])
        }
        if let maxRevision = VNRecognizeTextRequest.supportedRevisions.max() {
            request.revision = maxRevision
        }
        if #available(macOS 13.0, *) {
            request.automaticallyDetectsLanguage = options["autoDetect"] as? Bool ?? false
        }
        let preferred = options["languages"] as? [String] ?? []
        if let supported = try? request.supportedRecognitionLanguages() {
            let matched = preferred.filter { supported.contains($0) }
            if !matched.isEmpty {
                request.recognitionLanguages = matched
            }
        }
        try handler.perform([request])
        let lines = (request.results ?? []).compactMap { $0.topCandidates(1).first?.string }
        emit(["lines": lines])
    }
} catch {
    fputs("Error: \(error.localizedDescription)\n", stderr)
    exit(1)
}
"""


async def run(image: Image.Image, options: Dict[str, Any], timeout: float = TIMEOUT_S) -> Dict[str, Any]:
    """Run the Swift Vision script on ``image`` with ``options``.

    Parameters
    ----------
    image:
        Image to process; written to a temporary PNG for the script.
    options:
        JSON-serializable options (``task``, ``level``, ``correction``,
        ``minimumTextHeight``, ``roi``, ``autoDetect``, ``languages``).

    Returns
    -------
    dict
        Parsed JSON printed by the script.

    Raises
    ------
    EngineError
        If the script cannot be started, times out, fails or prints invalid
        JSON.
    """

    with tempfile.TemporaryDirectory(prefix="screen_ocr_vision_") as tmp:
        image_path = Path(tmp) / "input.png"
        image.save(image_path, format="PNG")
        try:
            proc = await asyncio.create_subprocess_exec(
                "swift",
                "-",
                str(image_path),
                json.dumps(options),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise EngineError("UNAVAILABLE", "swift toolchain not found") from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(SWIFT_SCRIPT.encode("utf-8")), timeout=timeout
            )
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise EngineError("TIMEOUT", f"Apple Vision call timed out (>{timeout:.0f}s)") from exc

    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        raise EngineError("OCR_ERROR", message or f"swift exited with {proc.returncode}")

    try:
        return json.loads(stdout.decode("utf-8"))
    except json.JSONDecodeError as exc:
        raise EngineError("BAD_OUTPUT", "Apple Vision returned invalid JSON") from exc


__all__ = ["SWIFT_SCRIPT", "run"]
