"""Run the enrichment pipeline on one markdown document.

Usage:
    python scripts/run_enrichment.py [path/to/document.md] [--estimate N]

Without a path, a bundled "Introduction to TypeScript" sample is processed.
Prints the persistable metadata record (without the embedding) as JSON.
With --estimate, prints the static cost estimate for N documents and exits.
"""

import asyncio
import json
import sys
from pathlib import Path

from enrichment_engine.core.costs import estimate_cost
from enrichment_engine.core.errors import CapabilityError
from enrichment_engine.graphs.enrichment_pipeline_graph import EnrichmentPipeline

SAMPLE_DOCUMENT = """# Introduction to TypeScript

TypeScript is a strongly typed programming language that builds on JavaScript, giving you better tooling at any scale.

## Key Features

- **Type Safety**: Catch errors at compile time
- **Modern JavaScript**: Use the latest ECMAScript features
- **Tooling**: Enhanced IDE support and autocomplete
- **Scalability**: Perfect for large codebases

## Getting Started

Install TypeScript globally:

```bash
npm install -g typescript
```

Create your first TypeScript file:

```typescript
const greeting: string = "Hello, TypeScript!";
console.log(greeting);
```

TypeScript makes JavaScript development more productive and enjoyable!
"""


async def run(document_text: str) -> int:
    pipeline = EnrichmentPipeline.from_settings()
    print(f"Health: {json.dumps(pipeline.health())}\n", file=sys.stderr)

    try:
        result = await pipeline.process(document_text)
    except CapabilityError as e:
        print(f"Enrichment failed: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result.metadata_record(), indent=2))
    print(
        f"\nQuality: {result.quality_score}/100 {'PASSED' if result.passed else 'FAILED'}"
        f" | {result.processing_time_ms}ms | ${result.estimated_cost_usd:.4f}"
        f" | embedding {result.embedding_dimensions} dims",
        file=sys.stderr,
    )
    if not result.passed:
        print(f"Feedback: {result.validation_report.overall_feedback}", file=sys.stderr)
    return 0


def main() -> None:
    args = sys.argv[1:]

    if args and args[0] == "--estimate":
        if len(args) < 2 or not args[1].isdigit():
            print("Usage: python scripts/run_enrichment.py --estimate <document_count>")
            sys.exit(1)
        print(estimate_cost(int(args[1])).model_dump_json(indent=2))
        return

    if args:
        path = Path(args[0])
        if not path.is_file():
            print(f"File not found: {path}")
            sys.exit(1)
        document_text = path.read_text(encoding="utf-8")
    else:
        document_text = SAMPLE_DOCUMENT

    sys.exit(asyncio.run(run(document_text)))


if __name__ == "__main__":
    main()
