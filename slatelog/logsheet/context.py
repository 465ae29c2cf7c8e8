from __future__ import annotations

from typing import Any, Dict, List, Optional

from slatelog.numbering import fields as F
from slatelog.numbering.index import HistoryIndex
from slatelog.numbering.ranges import format_value, read_value

from .service import LogSheetService


def build_shot_context(svc: LogSheetService, scene: Optional[str] = None, shot: Optional[str] = None, max_takes: int = 20) -> Dict[str, Any]:
    project = svc.get_project()
    camera_count = project.camera_count if project else 1
    index = HistoryIndex.build(svc.list_takes())
    takes = index.shot_takes(scene, shot) if scene and shot else index.takes
    if max_takes > 0:
        takes = takes[-max_takes:]

    rows = []
    for take in takes:
        rows.append(
            {
                "take_id": take.take_id,
                "scene": take.scene,
                "shot": take.shot,
                "take": take.take_number,
                "classification": take.classification,
                "good": bool(take.fields.get(F.IS_GOOD_TAKE)),
                "files": {fid: format_value(read_value(take.fields, fid)) for fid in F.file_field_ids(camera_count)},
            }
        )
    return {
        "project_id": svc.project_id,
        "project_name": project.name if project else None,
        "camera_count": camera_count,
        "focus": {"scene": scene, "shot": shot},
        "takes": rows,
    }


def format_shot_context(ctx: Dict[str, Any]) -> str:
    focus = ctx.get("focus") or {}
    rows = ctx.get("takes") or []

    lines: List[str] = []
    lines.append("LOG_SHEET")
    lines.append(f"project_id: {ctx.get('project_id', '')} name={ctx.get('project_name')} cameras={ctx.get('camera_count')}")
    lines.append(f"focus: scene={focus.get('scene')} shot={focus.get('shot')}")

    lines.append("takes:")
    if not rows:
        lines.append("(none)")
    for row in rows:
        files = " ".join(f"{k}={v or '-'}" for k, v in (row.get("files") or {}).items())
        mark = " *" if row.get("good") else ""
        lines.append(
            f"- scene={row.get('scene')} shot={row.get('shot')} take={row.get('take')} "
            f"class={row.get('classification')} {files}{mark}"
        )
    return "\n".join(lines)
