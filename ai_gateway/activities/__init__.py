"""Side-effecting activities invoked by the orchestration facade.

- record_image: Persist and list image-generation records in Blob Storage
"""
