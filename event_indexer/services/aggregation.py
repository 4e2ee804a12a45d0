from typing import Iterable, List


def canonical_key(record: dict):
    return (int(record["blockNumber"]), int(record["logIndex"]))


def aggregate(records: Iterable[dict]) -> List[dict]:
    """
    Merge fetched records into canonical order: ascending block height, then
    ascending log index. Records sharing a (transactionHash, logIndex) identity
    are kept once.
    """
    seen = set()
    unique = []
    for rec in records:
        identity = (rec["transactionHash"], int(rec["logIndex"]))
        if identity in seen:
            continue
        seen.add(identity)
        unique.append(rec)
    return sorted(unique, key=canonical_key)
