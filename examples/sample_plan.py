"""
Sample migration plan.

    surreal-undo migrate examples/sample_plan.py --dry-run
    surreal-undo migrate examples/sample_plan.py
    surreal-undo undo <tag printed by migrate>
"""

from surreal_undo.migrations import InsertDocument, MigrationPlan, UpdateDocuments

plan = MigrationPlan(
    name="sample",
    description="Seed x and y, then move every 'old' z document to 'new'.",
    operations=[
        InsertDocument(collection="x", document={"name": "X1", "value": 10}, timestamp_field="createdAt"),
        InsertDocument(collection="y", document={"name": "Y1", "value": 20}, timestamp_field="createdAt"),
        UpdateDocuments(
            collection="z",
            filter={"status": "old"},
            update={"status": "new"},
            timestamp_field="updatedAt",
        ),
    ],
)
