import math
import time


def iter_batches(items, batch_size):
    """Yield (batch_number, batch) with batch_number starting at 1."""
    for start in range(0, len(items), batch_size):
        yield start // batch_size + 1, items[start:start + batch_size]


def process_in_batches(items, options, handle, label, sleep=time.sleep, progress=print, status=None):
    """
    Call handle(item) for every item, one at a time, in batches of options.batch_size.

    Sleeps options.delay_seconds between batches but not after the last one.
    handle is expected to record its own failures; an exception escaping it
    stops the run.
    """
    total = math.ceil(len(items) / options.batch_size) if items else 0

    for number, batch in iter_batches(items, options.batch_size):
        message = f"Creating {label} batch {number}/{total}"
        if status:
            message += f" ({status()})"
        progress(message)

        for item in batch:
            handle(item)

        if number < total:
            sleep(options.delay_seconds)
