"""
FileRecord module - slot-addressable file metadata records.

Records reference their owner polymorphically through an
(owner_type, owner_id) pair, so any entity can hold attachments
without a hard foreign key.
"""
