#!/usr/bin/env python3
"""
CLI tool for resume analysis

Runs the same workflow as the /sessions API: analyze, optionally rectify,
optionally export the draft as PDF.
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ats_bridge.core.workflow import (
    AnalyzeRequested,
    JobDescriptionUpdated,
    RectifyRequested,
    SourceProvided,
    WorkflowState,
)
from ats_bridge.services.document_service import DocumentService
from ats_bridge.services.export_service import build_resume_pdf, export_filename
from ats_bridge.services.workflow_service import SessionStore, WorkflowService
from ats_bridge.utils.config import settings
from ats_bridge.utils.exceptions import ATSBridgeException
from ats_bridge.utils.logger import get_logger

logger = get_logger(__name__)


def display_results(state: WorkflowState, input_label: str):
    """Print scores, gaps and issues in a readable format"""
    analysis = state.analysis

    print(f"\n{'='*70}")
    print(f"ATS ANALYSIS RESULTS")
    print(f"{'='*70}")
    print(f"Input: {input_label}")
    print(f"Candidate: {analysis.personal_info.name}")
    print(f"Mode: {analysis.mode}")
    print(f"{'='*70}")

    print(f"\nMatch score:  {analysis.match_score:5.1f} / 100")
    if state.baseline_score is not None and state.baseline_score != analysis.match_score:
        delta = analysis.match_score - state.baseline_score
        print(f"  (was {state.baseline_score:.1f} before rectify, {delta:+.1f})")
    print(f"Impact score: {analysis.impact_score:5.1f} / 100")

    sections = [
        ("Missing keywords", analysis.missing_keywords),
        ("Hard skill gaps", analysis.hard_skill_gaps),
        ("Soft skill gaps", analysis.soft_skill_gaps),
        ("Formatting issues", analysis.formatting_issues),
    ]
    for title, items in sections:
        if not items:
            continue
        print(f"\n{title}:")
        print(f"{'-'*70}")
        for item in items:
            print(f"  - {item}")

    if analysis.annotations:
        print(f"\nAnnotations:")
        print(f"{'-'*70}")
        for note in analysis.annotations:
            print(f"  [{note.severity.upper():>6}] \"{note.text_segment[:60]}\"")
            print(f"           {note.critique}")
            if note.suggested_fix:
                print(f"           -> {note.suggested_fix}")

    print(f"\nSummary:")
    print(f"{'-'*70}")
    print(f"  {state.draft.summary}")
    print(f"\n{'='*70}\n")


def read_job_description(args) -> str:
    if args.job_description_file:
        return Path(args.job_description_file).read_text(encoding="utf-8")
    return args.job_description or ""


async def run(args) -> int:
    document_service = DocumentService()

    if args.text:
        source = document_service.from_text(args.text)
        input_label = "<text>"
    else:
        input_path = Path(args.input_path)
        if not input_path.exists():
            print(f"Error: Input file not found: {input_path}")
            return 1
        source = document_service.from_upload(input_path.read_bytes(), input_path.name)
        input_label = str(input_path)

    session = SessionStore().create()
    workflow = WorkflowService()

    await workflow.dispatch(session, SourceProvided(source=source))
    job_description = read_job_description(args)
    if job_description.strip():
        await workflow.dispatch(session, JobDescriptionUpdated(job_description=job_description))

    print(f"Analyzing with {settings.AI_PROVIDER} / {settings.active_model_name}...")
    state = await workflow.dispatch(session, AnalyzeRequested())
    if state.last_error is not None:
        print(f"\nError during analysis: {state.last_error.message}")
        return 1

    if args.rectify:
        print("Rectifying summary and experience...")
        state = await workflow.dispatch(session, RectifyRequested())
        if state.last_error is not None:
            if state.last_error.step == "rectify":
                print(f"\nError during rectify: {state.last_error.message}")
                return 1
            print(f"Warning: revised draft kept but not re-scored ({state.last_error.message})")

    if args.json:
        print(json.dumps({
            "analysis": state.analysis.model_dump(mode="json"),
            "draft": state.draft.model_dump(mode="json"),
            "baseline_score": state.baseline_score,
        }, indent=2, ensure_ascii=False))
    else:
        display_results(state, input_label)

    if args.export:
        output_path = Path(args.export)
        if output_path.is_dir():
            output_path = output_path / export_filename(state.draft)
        output_path.write_bytes(build_resume_pdf(state.draft))
        print(f"PDF written to: {output_path}")

    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Analyze a resume for ATS compatibility and optionally rewrite it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generalized analysis
  python scripts/analyze_cli.py resume.pdf

  # Score against a job description
  python scripts/analyze_cli.py resume.docx --job-description-file job.txt

  # Rewrite and export the result
  python scripts/analyze_cli.py resume.pdf --rectify --export out/

  # Pasted text, machine-readable output
  python scripts/analyze_cli.py --text "$(cat resume.txt)" --json
        """
    )

    parser.add_argument("input_path", nargs="?", help="Path to resume (.pdf, .txt, .md, .docx)")
    parser.add_argument("--text", type=str, default=None,
                        help="Resume content as plain text instead of a file")
    parser.add_argument("--job-description", type=str, default=None,
                        help="Target job description")
    parser.add_argument("--job-description-file", type=str, default=None,
                        help="Read the job description from a file")
    parser.add_argument("--rectify", action="store_true",
                        help="Rewrite summary and experience after the analysis")
    parser.add_argument("--export", type=str, default=None, metavar="PATH",
                        help="Write the draft as PDF (file path or directory)")
    parser.add_argument("--json", action="store_true",
                        help="Print analysis and draft as JSON")

    args = parser.parse_args()

    if bool(args.input_path) == bool(args.text):
        parser.error("provide either a resume path or --text")

    try:
        return asyncio.run(run(args))
    except ATSBridgeException as e:
        print(f"\nError: {e.message}")
        return 1
    except Exception as e:
        print(f"\nUnexpected error: {e}")
        logger.error(f"CLI run failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
