"""Domain types: catalog entities, credit value objects and tagged results."""
