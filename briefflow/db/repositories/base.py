from sqlalchemy.orm import Session


class Repository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def stage(self, obj):
        """Add and flush without committing; the caller owns the transaction."""
        self.session.add(obj)
        self.session.flush()
        return obj
