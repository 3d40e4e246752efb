from imposter import db
from imposter.models import Category, Word


class WordCatalog:
    """Supplies secret words from the database word list."""

    def random_word(self):
        """Return a random ``Word`` row, or None when the catalog is empty."""
        return Word.query.order_by(db.func.random()).first()

    def reseed(self, categories: dict) -> int:
        Word.query.delete()
        Category.query.delete()
        count = 0
        for name, words in categories.items():
            category = Category(name=name)
            db.session.add(category)
            db.session.flush()
            for text in words:
                db.session.add(Word(text=text, category_id=category.id))
                count += 1
        db.session.commit()
        return count
