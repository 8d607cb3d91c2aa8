from prime_gen.pipeline import main

main()
