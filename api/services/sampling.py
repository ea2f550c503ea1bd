import random


def sample_ids(ids, size):
    """Uniform random subset of `ids` without replacement, at most `size` long."""
    pool = list(dict.fromkeys(ids))
    if size <= 0:
        return []
    if len(pool) <= size:
        random.shuffle(pool)
        return pool
    return random.sample(pool, size)
