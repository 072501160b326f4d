from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .clients.gemini_image import GeminiImageClient
from .config import AppConfig, load_config
from .errors import BatchValidationError
from .output.store import OutputStore
from .session import EditorSession
from .tasks.edit_plan import EditPlan, load_edit_plan
from .types import EntryStatus, ResultEntry, StyleOptions

_STATUS_STYLES = {
    EntryStatus.PENDING: "[yellow]pending[/yellow]",
    EntryStatus.SUCCESS: "[green]success[/green]",
    EntryStatus.ERROR: "[red]error[/red]",
}


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate several edited variations of one image with the Gemini image model."
    )
    parser.add_argument("image", type=Path, nargs="?", help="Base image to edit.")
    parser.add_argument(
        "-p",
        "--prompt",
        dest="prompts",
        action="append",
        default=None,
        help="Edit instruction; repeat for several variations.",
    )
    parser.add_argument(
        "--plan",
        type=Path,
        default=None,
        help="JSON edit plan with image_path, instructions, style and remove_background.",
    )
    parser.add_argument("--brand-color", default=None, help="Hex brand color, e.g. #6366F1 (empty to disable).")
    parser.add_argument("--texture", action="store_true", help="Overlay a subtle texture on every variation.")
    parser.add_argument(
        "--aspect-ratio",
        choices=["original", "portrait", "story", "video"],
        default=None,
        help="Target aspect ratio of the variations.",
    )
    parser.add_argument(
        "--remove-background",
        type=int,
        action="append",
        default=None,
        metavar="POSITION",
        help="Also produce a background-removed copy of the result at this position (0-based).",
    )
    parser.add_argument(
        "--batch-name",
        type=str,
        default=None,
        help="Output subdirectory name (defaults to the image or plan file stem).",
    )
    parser.add_argument("--zip", action="store_true", help="Also write variations.zip with every success.")
    parser.add_argument(
        "--dotenv",
        type=Path,
        default=None,
        help="Optional path to a .env file containing the Gemini API key.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def _build_plan(args: argparse.Namespace, console: Console) -> tuple[EditPlan, Path]:
    if args.plan is not None:
        if not args.plan.exists():
            console.print(f"[red]Plan file not found:[/red] {args.plan}")
            raise SystemExit(1)
        plan = load_edit_plan(args.plan)
        image_path = plan.resolve_image_path(args.plan.parent)
    else:
        if args.image is None or not args.prompts:
            console.print("[red]Provide an image and at least one --prompt, or a --plan file.[/red]")
            raise SystemExit(2)
        plan = EditPlan(image_path=str(args.image), instructions=args.prompts)
        image_path = args.image

    style_updates: dict[str, object] = {}
    if args.brand_color is not None:
        style_updates["brand_color"] = args.brand_color
    if args.texture:
        style_updates["use_texture"] = True
    if args.aspect_ratio is not None:
        style_updates["aspect_ratio"] = args.aspect_ratio
    try:
        if style_updates:
            style = StyleOptions.model_validate({**plan.style.model_dump(), **style_updates})
            plan = plan.model_copy(update={"style": style})
        if args.remove_background:
            plan = EditPlan.model_validate(
                {**plan.model_dump(), "remove_background": plan.remove_background + args.remove_background}
            )
    except ValidationError as exc:
        console.print("[red]Invalid options:[/red]", escape(str(exc)))
        raise SystemExit(2) from exc
    return plan, image_path


def render_entries(console: Console, entries: Sequence[ResultEntry]) -> None:
    table = Table(title="Variations")
    table.add_column("#", justify="right")
    table.add_column("Instruction")
    table.add_column("Status")
    table.add_column("Details")
    for index, entry in enumerate(entries):
        details = entry.error or (entry.mime_type or "")
        table.add_row(str(index), entry.instruction, _STATUS_STYLES[entry.status], details)
    console.print(table)


async def run(config: AppConfig, plan: EditPlan, image_path: Path, batch_name: str, console: Console, zip_output: bool) -> int:
    async with GeminiImageClient(config.gemini) as client:
        session = EditorSession(
            client,
            task_timeout=config.gemini.task_timeout_seconds,
            instructions=plan.instructions,
            style=plan.style,
        )
        session.load_base_image(image_path)

        console.rule("Gemini edits")
        with console.status(f"Generating {len(plan.instructions)} variation(s)..."):
            try:
                entries = await session.generate()
            except BatchValidationError as exc:
                console.print(f"[red]{session.error}[/red] ({exc})")
                return 1

        if plan.remove_background:
            sources = []
            for position in sorted(set(plan.remove_background)):
                entry = entries[position]
                if entry.status is EntryStatus.SUCCESS:
                    sources.append(entry.id)
                else:
                    console.print(
                        f"[yellow]Skipping background removal for #{position} ({entry.status.value}).[/yellow]"
                    )
            if sources:
                console.rule("Background removal")
                with console.status(f"Removing background from {len(sources)} image(s)..."):
                    await asyncio.gather(*(session.remove_background(entry_id) for entry_id in sources))

        render_entries(console, session.entries)
        if session.error:
            console.print(f"[red]{session.error}[/red]")

        store = OutputStore(config.output.root_dir, batch_name=batch_name)
        saved = store.save(session.entries, include_metadata=config.output.include_metadata)
        if zip_output:
            archive = store.export_zip(session.entries)
            if archive is not None:
                console.print(f"[green]Archive written to[/green] {archive}")
        if saved:
            console.print(f"[green]{len(saved)} image(s) saved to[/green] {store.base_dir}")
        else:
            console.print("[yellow]No successful variations to save.[/yellow]")

        failed = sum(1 for entry in session.entries if entry.status is EntryStatus.ERROR)
        return 1 if failed and not saved else 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    console = Console()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    plan, image_path = _build_plan(args, console)
    if not Path(image_path).exists():
        console.print(f"[red]Base image not found:[/red] {image_path}")
        raise SystemExit(1)

    config = load_config(args.dotenv)
    batch_name = args.batch_name or (args.plan.stem if args.plan is not None else Path(image_path).stem)
    raise SystemExit(asyncio.run(run(config, plan, Path(image_path), batch_name, console, args.zip)))


if __name__ == "__main__":
    main()
