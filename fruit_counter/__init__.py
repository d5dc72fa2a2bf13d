"""
Fruit basket counter:
- image_normalize: bound image size/bytes for the vision model
- storage: publish images at a fetchable URL (NCP Object Storage or memory)
- services: CLOVA Studio vision call
- reconcile: turn the model reply into clean counts/prices
- main: FastAPI application
"""
