"""
Ask the clinical assistant a question.

Compares the hardcoded-branching assistant with the tool-calling agent:

    python scripts/ask.py "Can she take ibuprofen for knee pain?" --patient-id P001 --mode both
"""
import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from careagent.assistant import load_assistant
from careagent.utils.config_loader import load_config
from careagent.utils.logging_utils import setup_logging


def print_result(result: dict) -> None:
    print(f"\n{'='*70}")
    print(f"MODE: {result['mode']}")
    print(f"{'='*70}")

    if result['mode'] == 'rule_based':
        print(f"Branch taken: {result['branch']}")
    else:
        print(f"Model calls: {result['iterations']}")
        if result['max_iterations_reached']:
            print("[WARN] Tool-call limit reached, answer was forced")
        if result['tool_calls']:
            print("Tools called:")
            for call in result['tool_calls']:
                status = "ok" if call['error'] is None else f"error: {call['error']}"
                print(f"  [{call['iteration']}] {call['name']}({call['arguments']}) -> {status}")
        else:
            print("Tools called: none")

    print(f"\nAnswer:\n{result['answer']}")
    print(f"\nTime: {result['elapsed_ms']:.0f}ms")


def main():
    parser = argparse.ArgumentParser(description="Ask the clinical assistant a question")
    parser.add_argument("question", help="Clinician question")
    parser.add_argument("--patient-id", default=None, help="Patient ID (agentic mode only)")
    parser.add_argument("--mode", choices=["agentic", "rule_based", "both"], default="agentic")
    parser.add_argument("--config", default=None, help="Path to YAML config file")
    parser.add_argument("--json", action="store_true", help="Print raw JSON results")
    args = parser.parse_args()

    logging_config = load_config(args.config).get_logging_config()
    setup_logging(logging_config.get('level', 'INFO'), logging_config.get('format'))

    print("[INFO] Loading assistant...")
    try:
        assistant = load_assistant(args.config)
    except FileNotFoundError as e:
        print(f"[ERROR] {e}")
        sys.exit(1)
    print("[OK] Assistant ready")

    modes = ["rule_based", "agentic"] if args.mode == "both" else [args.mode]
    results = [assistant.ask(args.question, patient_id=args.patient_id, mode=mode) for mode in modes]

    if args.json:
        print(json.dumps(results, indent=2, default=str))
        return

    for result in results:
        print_result(result)


if __name__ == "__main__":
    main()
