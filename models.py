from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Keys of a serialized post, in the order they are written out
POST_FIELDS = ["id", "title", "subtitle", "headerImage", "content", "createdAt", "updatedAt"]

# Fields a client may supply; everything else is assigned on creation
CANDIDATE_FIELDS = ["title", "subtitle", "headerImage", "content"]


def make_post(candidate, post_id, timestamp):
    """Build a post dict from a validated candidate."""
    post = {"id": post_id}
    for field in CANDIDATE_FIELDS:
        value = candidate.get(field)
        post[field] = "" if value is None else str(value)
    post["createdAt"] = timestamp
    post["updatedAt"] = timestamp
    return post


class Post(db.Model):
    __tablename__ = "blogs"

    id = db.Column(db.String(32), primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    subtitle = db.Column(db.String(500), nullable=False, default="")
    header_image = db.Column(db.String(400), nullable=False, default="")  # /uploads/... URL
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.String(40), nullable=False)  # ISO-8601, as in the JSON store
    updated_at = db.Column(db.String(40), nullable=False)
    seq = db.Column(db.Integer, nullable=False, index=True)  # append order

    @classmethod
    def from_dict(cls, post, seq):
        return cls(
            id=post["id"],
            title=post["title"],
            subtitle=post["subtitle"],
            header_image=post["headerImage"],
            content=post["content"],
            created_at=post["createdAt"],
            updated_at=post["updatedAt"],
            seq=seq,
        )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "subtitle": self.subtitle,
            "headerImage": self.header_image,
            "content": self.content,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
