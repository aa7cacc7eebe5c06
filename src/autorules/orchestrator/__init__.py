"""In-process orchestration of rule checks and per-rule summaries.

Why not a thread pool or a task broker?
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Every unit of work spends nearly all of its time waiting on one HTTP call to
the completion API.  A single ``asyncio`` event loop gives us "many calls in
flight" without threads, and it keeps the bookkeeping simple: progress
updates and rule-completion checks run between suspension points, so they
never interleave with each other.

The moving parts:

- ``task_queue`` bounds how many checks and summaries are in flight.
- ``worker`` turns one (file, rule) pair into one ``CheckResult``.
- ``completion`` notices when a rule has all of its results and submits the
  rule's summary task to the same queue.
- ``progress`` accumulates totals and re-renders the live view.
- ``runner`` wires the above together for one CLI invocation.
"""
