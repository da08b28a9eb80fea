from promdownsampler.cli import main

raise SystemExit(main())
