"""
DNN: a decentralized news network.

Writers submit articles, a randomly selected panel of voters accepts or
rejects them within a fixed voting period, and accepted articles earn the
writer a fee from the platform ledger.

Import components using their full module paths, e.g.:
    from dnn.domain import Article, ArticleStatus
    from dnn.usecase import ArticleLifecycle, VoteTallyEngine
    from dnn.repos.memory import MemoryArticleRepository
"""
