#!/usr/bin/env python3
"""
Quick Start Example - Index a corpus, search it and pick passages for a subscriber.

Uses an inline corpus so it runs without data/kjv.json.
"""

from datetime import date

from versebot import (
    DeliverySelector,
    PassageRef,
    SearchEngine,
    SentLedger,
    Subscriber,
    TopicCatalog,
    build_index,
)

CORPUS = {
    "Joshua.1.9": "Be strong and of a good courage; be not afraid, neither be thou dismayed.",
    "Deuteronomy.31.6": "Be strong and of a good courage, fear not, nor be afraid of them.",
    "Isaiah.41.10": "Fear thou not; for I am with thee: be not dismayed; for I am thy God.",
    "Hebrews.11.1": "Now faith is the substance of things hoped for, the evidence of things not seen.",
    "1John.4.8": "He that loveth not knoweth not God; for God is love.",
}


def main():
    print("=== versebot - Quick Start Example ===\n")

    # Step 1: Build the read-only index
    print("[1] Building corpus index...")
    index = build_index(CORPUS)
    print(f"✓ Indexed {len(index)} passages\n")

    # Step 2: Free-text search
    print("[2] Searching for 'fear not be strong'...\n")
    for i, passage in enumerate(SearchEngine(index).search("fear not be strong", limit=5), 1):
        print(f"{i}. {passage.ref}")
        print(f"   {passage.text}")
    print()

    # Step 3: Pick passages for a subscriber, three times on the same day
    print("[3] Selecting for a subscriber on topic 'courage'...\n")
    catalog = TopicCatalog(
        {
            "courage": [
                PassageRef("Joshua", 1, 9),
                PassageRef("Deuteronomy", 31, 6),
                PassageRef("Isaiah", 41, 10),
            ],
            "encouragement": [PassageRef("1 John", 4, 8)],
        }
    )
    selector = DeliverySelector(index, catalog, SentLedger(path=None))
    subscriber = Subscriber(user_id="demo", topic="courage")

    for run in range(1, 4):
        picked = selector.select(subscriber, count=2, today=date.today())
        print(f"Run {run}: {', '.join(str(p.ref) for p in picked)}")

    print("\n=== Demo Complete! ===")


if __name__ == "__main__":
    main()
