def load_all_models():
    import model.user                                    # noqa: F401
    import model.community                               # noqa: F401
    import model.post                                    # noqa: F401
    import model.notification                            # noqa: F401
    import model.message                                 # noqa: F401
    import model.moderation                              # noqa: F401
    import model.factcheck                               # noqa: F401
    import model.motivation                              # noqa: F401
