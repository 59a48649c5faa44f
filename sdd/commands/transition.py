"""
sdd transition - Switch work between the new-feature and change workflows.
"""

from pathlib import Path

from sdd.change.transition import GUIDE, change_to_new, new_to_change
from sdd.lib.errors import ExitCode, SddError


def cmd_transition_new_to_change(args, sdd_dir: Path, config) -> int:
    created = new_to_change(sdd_dir, args.id, title=args.title, reason=args.reason)
    print(f"Created change {created.id} for spec {args.id}")
    for path in created.files:
        print(f"  {path}")
    print(f"Next: fill in the delta, then 'sdd change propose {created.id}'")
    return ExitCode.SUCCESS


def cmd_transition_change_to_new(args, sdd_dir: Path, config) -> int:
    feature = change_to_new(sdd_dir, args.id, name=args.name, reason=args.reason)
    print(f"Created feature {feature.feature_id} from {feature.source_change}")
    print(f"  {feature.path}")
    print(f"{feature.source_change} now records transitioned_to: {feature.feature_id}")
    return ExitCode.SUCCESS


def cmd_transition(args, sdd_dir: Path, config) -> int:
    if args.transition_cmd is None or args.transition_cmd == "guide":
        print(GUIDE)
        return ExitCode.SUCCESS
    handler = cmd_transition_new_to_change if args.transition_cmd == "new-to-change" else cmd_transition_change_to_new
    try:
        return handler(args, sdd_dir, config)
    except SddError as e:
        print(f"ERROR: {e.message}")
        return e.exit_code
