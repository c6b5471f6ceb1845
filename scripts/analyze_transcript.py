import os
import sys
import csv
import json
from dotenv import load_dotenv

sys.path.append(os.path.abspath("."))
from firereport.analysis import analyze
from firereport.logger import timed

INDEX_HEADER = ["id", "filename", "confidence", "summary", "transcript_chars"]


def main(paths, out_dir="outputs"):
    load_dotenv()
    out_dir = os.environ.get("ANALYSIS_OUTPUT_DIR", out_dir)
    os.makedirs(out_dir, exist_ok=True)
    index_csv = os.path.join(out_dir, "index.csv")
    if not os.path.exists(index_csv):
        with open(index_csv, "w", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(INDEX_HEADER)

    done = 0
    for p in paths:
        if not os.path.exists(p):
            print(f"File not found: {p}")
            continue

        with open(p, "r", encoding="utf-8") as f:
            text = f.read()
        with timed("Transcript analysis", file=os.path.basename(p)):
            result = analyze(text)

        base = os.path.splitext(os.path.basename(p))[0]
        outj = os.path.join(out_dir, f"{base}.json")
        with open(outj, "w", encoding="utf-8") as f:
            json.dump({
                "id": base,
                "filename": os.path.basename(p),
                "transcript_chars": len(text),
                **result.model_dump(by_alias=True),
            }, f, ensure_ascii=False, indent=2)

        with open(index_csv, "a", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow([base, os.path.basename(p), round(result.confidence, 2), result.summary, len(text)])

        print(f"Done: {outj} | Confidence: {round(result.confidence, 2)} | {result.summary}")
        done += 1
    return done


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts/analyze_transcript.py <file1.txt> [file2.txt ...]")
        sys.exit(1)
    sys.exit(0 if main(sys.argv[1:]) else 1)
