#!/usr/bin/env python3

import io
import os
import sys
from typing import List, Optional

sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from bfppvm import run_file


EXAMPLES_DIR = os.path.abspath(os.path.dirname(__file__))


def _read_optional(path: str) -> Optional[bytes]:
    if not os.path.exists(path):
        return None
    with open(path, 'rb') as f:
        return f.read()


def list_examples() -> List[str]:
    return sorted(
        os.path.splitext(name)[0]
        for name in os.listdir(EXAMPLES_DIR)
        if name.endswith('.bfpp')
    )


def check_example(name: str) -> dict:
    """Run examples/<name>.bfpp, feeding <name>.in when present, and compare with <name>.expected."""
    base = os.path.join(EXAMPLES_DIR, name)
    input_data = _read_optional(base + '.in') or b''
    expected = _read_optional(base + '.expected')

    result = run_file(base + '.bfpp', stdin=io.BytesIO(input_data))
    passed = result.ok and (expected is None or result.output == expected)
    return {
        'name': name,
        'passed': passed,
        'status': result.status.value,
        'output': result.output,
        'expected': expected,
        'message': result.message,
    }


def main() -> int:
    results = [check_example(name) for name in list_examples()]
    failed = 0
    for r in results:
        if r['passed']:
            print(f"PASS  {r['name']}")
            continue
        failed += 1
        print(f"FAIL  {r['name']} ({r['status']})")
        print(f"      expected: {r['expected']!r}")
        print(f"      actual:   {r['output']!r}")
        if r['message']:
            print(f"      {r['message']}")

    print(f"\n{len(results) - failed}/{len(results)} examples passed")
    return 1 if failed else 0


if __name__ == '__main__':
    raise SystemExit(main())
